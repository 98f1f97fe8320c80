#!/usr/bin/env python3
"""
Engine profiles.

Everything that differs between browser engines (timeouts, anchor
selectors, readiness checks, extra title strategies, field selectors) lives
on an EngineProfile. The collector is handed one profile and never looks at
engine names.
"""

import logging
from abc import ABC
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ordercheck.browser.base import ListingPage
from ordercheck.config import EngineTimeouts, ENGINE_TIMEOUTS
from ordercheck.exceptions import ReadinessTimeout
from ordercheck.extraction.fields import FieldChain, SCORE_CHAIN, AUTHOR_CHAIN, TIMESTAMP_CHAIN
from ordercheck.extraction.strategies import (
    TitleStrategy, AnchorScopedTitleStrategy, SiblingRowTitleStrategy, TitleExtractionChain
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadinessOutcome:
    """Result of waiting for a page to become readable."""
    selector: str
    fallback_used: bool = False
    degraded: bool = False
    detail: Optional[str] = None


class EngineProfile(ABC):
    """Base engine profile with the chromium-style defaults."""

    name = "base"
    anchor_selector = '.athing'
    fallback_anchor_selectors: Tuple[str, ...] = ('.athing', 'tr[id^="thing"]', '[id*="thing"]')
    next_page_selector = '.morelink'

    def __init__(self, timeouts: Optional[EngineTimeouts] = None):
        self.timeouts = timeouts or ENGINE_TIMEOUTS.get(self.name, ENGINE_TIMEOUTS['chromium'])
        self._title_chain: Optional[TitleExtractionChain] = None

    def readiness_selectors(self) -> List[str]:
        """Primary anchor selector followed by the distinct fallbacks."""
        selectors = [self.anchor_selector]
        for selector in self.fallback_anchor_selectors:
            if selector not in selectors:
                selectors.append(selector)
        return selectors

    async def wait_ready(self, page: ListingPage) -> ReadinessOutcome:
        """
        Wait for the first anchor selector that resolves.

        Raises:
            ReadinessTimeout: If none of the selectors resolves
        """
        selectors = self.readiness_selectors()
        for index, selector in enumerate(selectors):
            try:
                await page.wait_for_selector(selector, self.timeouts.element_ms)
            except ReadinessTimeout:
                logger.debug(f"[{self.name}] anchor selector {selector!r} did not resolve")
                continue
            return ReadinessOutcome(selector=selector, fallback_used=index > 0)
        raise ReadinessTimeout(selectors, self.timeouts.element_ms)

    async def find_anchors(self, page: ListingPage, readiness: ReadinessOutcome) -> List[Any]:
        return await page.query_all(readiness.selector)

    def title_strategies(self) -> List[TitleStrategy]:
        """Ordered title strategies for this engine."""
        return [
            AnchorScopedTitleStrategy(
                'a[href^="http"]:not([href*="vote"]):not([href*="from?site"])', 'external link'),
            AnchorScopedTitleStrategy('.titleline > a, .storylink, .titlelink', 'title class'),
            AnchorScopedTitleStrategy(
                'a[href*="http"]:not([href*="vote"]):not([href*="from?site"])', 'any http link'),
            SiblingRowTitleStrategy('.athing[id="{id}"] + tr .storylink:not(.age)', 'sibling row'),
        ]

    def title_chain(self) -> TitleExtractionChain:
        if self._title_chain is None:
            self._title_chain = TitleExtractionChain(self.title_strategies())
        return self._title_chain

    def field_chains(self) -> Dict[str, FieldChain]:
        return {
            'score': SCORE_CHAIN,
            'author': AUTHOR_CHAIN,
            'timestamp': TIMESTAMP_CHAIN,
        }

    def field_chain(self, field_name: str) -> FieldChain:
        chains = self.field_chains()
        if field_name not in chains:
            raise KeyError(f"No field chain '{field_name}' for engine {self.name}. Available: {list(chains)}")
        return chains[field_name]

    async def read_field(self, page: ListingPage, anchor: Any, record_id: str, field_name: str, accept):
        """Resolve one field through this engine's chain; see FieldChain.resolve."""
        return await self.field_chain(field_name).resolve(page, anchor, record_id, accept)

    async def next_page_href(self, page: ListingPage) -> Optional[str]:
        handle = await page.query_one(self.next_page_selector)
        if handle is None:
            return None
        href = await page.read_attribute(handle, 'href')
        return href or None

    def __repr__(self):
        return f"{self.__class__.__name__}(nav={self.timeouts.navigation_ms}ms, element={self.timeouts.element_ms}ms)"

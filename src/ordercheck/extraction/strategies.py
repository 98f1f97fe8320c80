#!/usr/bin/env python3
"""
Title extraction strategies

Listing markup drifts between layouts and engines, so titles are read by an
ordered chain of strategies. Each strategy either returns a candidate or
None ("not applicable"); the first candidate that passes the title validity
check wins.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple
from urllib.parse import urljoin

from ordercheck.browser.base import ListingPage
from ordercheck.models.record import UNKNOWN_TITLE

logger = logging.getLogger(__name__)

# Text that means we grabbed the age label or a comments link instead of a title
TITLE_STOP_WORDS = ('ago', 'minute', 'hour', 'day')
MIN_TITLE_LENGTH = 6


def is_valid_title(text: Optional[str]) -> bool:
    """
    Check whether extracted text looks like a real title.

    Valid titles are non-empty after trimming, are not the "Comments" link,
    contain none of the age stop words and are longer than five characters.
    """
    if not text:
        return False
    cleaned = text.strip()
    if not cleaned or cleaned == 'Comments':
        return False
    lowered = cleaned.lower()
    if any(word in lowered for word in TITLE_STOP_WORDS):
        return False
    return len(cleaned) >= MIN_TITLE_LENGTH


@dataclass(frozen=True)
class TitleCandidate:
    text: str
    url: Optional[str] = None


class TitleStrategy(ABC):
    """Abstract base class for title extraction strategies."""

    @abstractmethod
    async def extract(self, page: ListingPage, anchor: Any, record_id: str) -> Optional[TitleCandidate]:
        """
        Try to read the title of one record.

        Args:
            page: Page the record lives on
            anchor: Handle of the record's anchor row
            record_id: The record's id attribute

        Returns:
            Candidate title, or None when this strategy does not apply
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Get human-readable name of this strategy."""
        pass

    async def _candidate_from(self, page: ListingPage, handle: Any) -> Optional[TitleCandidate]:
        if handle is None:
            return None
        text = (await page.read_text(handle)).strip()
        if not text:
            return None
        href = await page.read_attribute(handle, 'href')
        url = urljoin(page.current_url, href) if href else None
        return TitleCandidate(text=text, url=url)


class AnchorScopedTitleStrategy(TitleStrategy):
    """Look for the title link inside the anchor row itself."""

    def __init__(self, selector: str, name: str):
        self.selector = selector
        self.name = name

    async def extract(self, page: ListingPage, anchor: Any, record_id: str) -> Optional[TitleCandidate]:
        handle = await page.query_one(self.selector, scope=anchor)
        return await self._candidate_from(page, handle)

    def get_name(self) -> str:
        return self.name


class SiblingRowTitleStrategy(TitleStrategy):
    """Look the title up page-wide through a selector keyed by the record id."""

    def __init__(self, template: str, name: str):
        self.template = template
        self.name = name

    async def extract(self, page: ListingPage, anchor: Any, record_id: str) -> Optional[TitleCandidate]:
        handle = await page.query_one(self.template.format(id=record_id))
        return await self._candidate_from(page, handle)

    def get_name(self) -> str:
        return self.name


class TitleExtractionChain:
    """Runs title strategies in order and applies the validity check."""

    def __init__(self, strategies: List[TitleStrategy]):
        self.strategies = list(strategies)

    def get_strategy_names(self) -> List[str]:
        return [strategy.get_name() for strategy in self.strategies]

    async def resolve(self, page: ListingPage, anchor: Any, record_id: str) -> Tuple[str, Optional[str], Optional[str]]:
        """
        Resolve a record's title.

        Returns:
            (title, url, strategy name); the title is UNKNOWN_TITLE and the
            strategy name None when every strategy came up empty
        """
        for strategy in self.strategies:
            try:
                candidate = await strategy.extract(page, anchor, record_id)
            except Exception as e:
                logger.debug(f"Title strategy '{strategy.get_name()}' failed for {record_id}: {e}")
                continue

            if candidate is None:
                continue

            if is_valid_title(candidate.text):
                return candidate.text.strip(), candidate.url, strategy.get_name()

            logger.debug(f"Rejected title {candidate.text!r} from '{strategy.get_name()}' for {record_id}")

        return UNKNOWN_TITLE, None, None

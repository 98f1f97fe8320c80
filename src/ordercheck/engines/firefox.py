#!/usr/bin/env python3
"""
Firefox engine profile.

Firefox sometimes attaches the anchor rows before the title rows are
rendered, so readiness gets a short settle delay and a best-effort check
that at least one of the first rows carries a title.
"""

import asyncio
import logging
from typing import List, Optional

from ordercheck.browser.base import ListingPage
from ordercheck.config import EngineTimeouts
from ordercheck.exceptions import ReadinessTimeout
from ordercheck.extraction.strategies import TitleStrategy, SiblingRowTitleStrategy

from .base import EngineProfile, ReadinessOutcome

logger = logging.getLogger(__name__)

TITLE_ROW_TEMPLATE = 'tr[id="{id}"] + tr .storylink, tr[id="{id}"] + tr .titlelink, tr[id="{id}"] .titleline > a'


class FirefoxProfile(EngineProfile):

    name = "firefox"
    anchor_selector = '.athing, tr[id^="thing"]'

    def __init__(self,
                 timeouts: Optional[EngineTimeouts] = None,
                 settle_delay_ms: int = 500,
                 title_row_timeout_ms: int = 5000,
                 rows_to_check: int = 3):
        super().__init__(timeouts)
        self.settle_delay_ms = settle_delay_ms
        self.title_row_timeout_ms = title_row_timeout_ms
        self.rows_to_check = rows_to_check

    async def wait_ready(self, page: ListingPage) -> ReadinessOutcome:
        outcome = await super().wait_ready(page)

        if self.settle_delay_ms:
            await asyncio.sleep(self.settle_delay_ms / 1000.0)

        detail = await self._check_title_rows(page, outcome.selector)
        if detail is None:
            return outcome
        return ReadinessOutcome(
            selector=outcome.selector,
            fallback_used=outcome.fallback_used,
            degraded=True,
            detail=detail
        )

    async def _check_title_rows(self, page: ListingPage, anchor_selector: str) -> Optional[str]:
        """Return None when a title row is present, otherwise why the check failed."""
        ids = []
        try:
            anchors = (await page.query_all(anchor_selector))[:self.rows_to_check]
            for anchor in anchors:
                row_id = await page.read_attribute(anchor, 'id')
                if row_id:
                    ids.append(row_id)

            if not ids:
                return "no anchor rows with an id to check"

            selector = ', '.join(TITLE_ROW_TEMPLATE.format(id=row_id) for row_id in ids)
            await page.wait_for_selector(selector, self.title_row_timeout_ms)
        except ReadinessTimeout:
            return f"no title row found for the first {len(ids)} rows within {self.title_row_timeout_ms}ms"
        except Exception as e:
            logger.debug(f"[{self.name}] title row check raised {type(e).__name__}: {e}")
            return f"title row check failed: {e}"
        return None

    def title_strategies(self) -> List[TitleStrategy]:
        strategies = super().title_strategies()
        strategies.append(SiblingRowTitleStrategy('tr[id="{id}"] + tr .storylink:not(.age)', 'firefox sibling row'))
        return strategies

#!/usr/bin/env python3
"""
Field chains for score, author and timestamp.

Each chain first tries page-wide selectors keyed by the record id (the
metadata row that follows the anchor row), then selectors scoped to the
anchor row itself.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple, TypeVar

from ordercheck.browser.base import ListingPage

logger = logging.getLogger(__name__)

T = TypeVar('T')

_SCORE_PATTERN = re.compile(r'(\d+)')


@dataclass(frozen=True)
class FieldChain:
    """Ordered selectors for one record field."""
    name: str
    id_templates: Tuple[str, ...] = field(default_factory=tuple)
    anchor_selectors: Tuple[str, ...] = field(default_factory=tuple)

    async def texts(self, page: ListingPage, anchor: Any, record_id: str) -> List[str]:
        """Text of the first match of every selector, in chain order, empty ones skipped."""
        found = []
        lookups = [(template.format(id=record_id), None) for template in self.id_templates]
        lookups += [(selector, anchor) for selector in self.anchor_selectors]

        for selector, scope in lookups:
            try:
                handle = await page.query_one(selector, scope=scope)
                if handle is None:
                    continue
                text = (await page.read_text(handle)).strip()
            except Exception as e:
                logger.debug(f"{self.name} selector {selector!r} failed for {record_id}: {e}")
                continue
            if text:
                found.append(text)
        return found

    async def resolve(self,
                      page: ListingPage,
                      anchor: Any,
                      record_id: str,
                      accept: Callable[[str], Optional[T]]) -> Tuple[Optional[T], List[str]]:
        """
        First accepted value along the chain.

        Args:
            accept: Converts a text into a value, or returns None to keep looking

        Returns:
            (value or None, every text that was tried)
        """
        texts = await self.texts(page, anchor, record_id)
        for text in texts:
            value = accept(text)
            if value is not None:
                return value, texts
        return None, texts


def parse_score(text: str) -> Optional[int]:
    """'123 points' -> 123."""
    match = _SCORE_PATTERN.search(text or '')
    return int(match.group(1)) if match else None


def parse_author(text: str) -> Optional[str]:
    cleaned = (text or '').strip()
    return cleaned or None


SCORE_CHAIN = FieldChain(
    name='score',
    id_templates=(
        '#score_{id}',
        'tr[id="{id}"] + tr .score',
        '[id="{id}"] + tr .score',
        '.athing[id="{id}"] + tr .score',
    ),
    anchor_selectors=('.score',)
)

AUTHOR_CHAIN = FieldChain(
    name='author',
    id_templates=(
        'tr[id="{id}"] + tr .hnuser',
        '[id="{id}"] + tr .hnuser',
        '.athing[id="{id}"] + tr .hnuser',
    ),
    anchor_selectors=('.hnuser', 'a[href*="user?id"]')
)

TIMESTAMP_CHAIN = FieldChain(
    name='timestamp',
    id_templates=(
        'tr[id="{id}"] + tr .age',
        '[id="{id}"] + tr .age',
        '.athing[id="{id}"] + tr .age',
    ),
    anchor_selectors=('.age', '[title*="ago"]')
)

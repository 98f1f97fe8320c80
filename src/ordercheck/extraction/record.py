#!/usr/bin/env python3
"""
Single record extraction.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from ordercheck.browser.base import ListingPage
from ordercheck.engines.base import EngineProfile
from ordercheck.exceptions import ExtractionFailure, RecordTimestampUnresolvable
from ordercheck.extraction.fields import parse_score, parse_author
from ordercheck.models.record import Record
from ordercheck.time_parser import parse_relative_time, is_parse_failure

logger = logging.getLogger(__name__)


class RecordExtractor:
    """Reads one Record from an anchor row using an engine profile's chains."""

    def __init__(self, profile: EngineProfile):
        self.profile = profile

    async def extract(self,
                      page: ListingPage,
                      anchor: Any,
                      reference: datetime,
                      attempt: int = 1) -> Record:
        """
        Extract a record.

        Raises:
            ExtractionFailure: If the anchor has no id
            RecordTimestampUnresolvable: If no timestamp text parses
        """
        record_id = await page.read_attribute(anchor, 'id')
        if not record_id:
            raise ExtractionFailure('<no id>', "anchor row has no id attribute")

        raw_time_text: Optional[str] = None

        def accept_time(text: str) -> Optional[datetime]:
            nonlocal raw_time_text
            parsed = parse_relative_time(text, reference)
            if is_parse_failure(parsed):
                return None
            raw_time_text = text
            return parsed

        timestamp, time_texts = await self.profile.read_field(page, anchor, record_id, 'timestamp', accept_time)
        if timestamp is None:
            raise RecordTimestampUnresolvable(record_id, time_texts)

        title, source_url, strategy_name = await self.profile.title_chain().resolve(page, anchor, record_id)
        if strategy_name is None:
            logger.debug(f"No valid title for record {record_id}")

        score, _ = await self.profile.read_field(page, anchor, record_id, 'score', parse_score)
        author, _ = await self.profile.read_field(page, anchor, record_id, 'author', parse_author)

        return Record(
            id=record_id,
            raw_time_text=raw_time_text,
            timestamp=timestamp,
            title=title,
            source_url=source_url,
            score=score if score is not None else 0,
            author=author,
            extraction_attempt=attempt
        )

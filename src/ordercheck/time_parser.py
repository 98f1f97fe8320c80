#!/usr/bin/env python3
"""
Relative time parsing.

Turns listing age labels such as "3 minutes ago" or "just now" into absolute
instants relative to a reference time. Parsing never raises: anything that
cannot be understood comes back as a ParseFailure value.
"""

import re
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

import pytz
from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r'\s+')
_RELATIVE_PATTERN = re.compile(r'^(\S+)\s*(minute|hour|day|month|year)s?\s+ago$')
_NOW_PHRASES = {'just now', 'now'}

_UNIT_DELTAS = {
    'minute': lambda n: relativedelta(minutes=n),
    'hour': lambda n: relativedelta(hours=n),
    'day': lambda n: relativedelta(days=n),
    'month': lambda n: relativedelta(months=n),
    'year': lambda n: relativedelta(years=n),
}


@dataclass(frozen=True)
class ParseFailure:
    """Why a relative time label could not be turned into an instant."""
    text: str
    reason: str

    def __bool__(self) -> bool:
        return False


def now_utc() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(pytz.UTC)


def normalize_time_text(text: Optional[str]) -> str:
    """Lower-case and collapse internal whitespace."""
    if not text:
        return ""
    return _WHITESPACE.sub(' ', text.strip().lower())


def parse_relative_time(text: Optional[str], reference: datetime) -> Union[datetime, ParseFailure]:
    """
    Parse a relative age label against a reference instant.

    Args:
        text: Raw label, e.g. "5 hours ago", "1 year ago", "just now"
        reference: Instant the label is relative to

    Returns:
        reference minus the stated amount, or a ParseFailure
    """
    normalized = normalize_time_text(text)
    if not normalized:
        return ParseFailure(text or "", "empty text")

    if normalized in _NOW_PHRASES:
        return reference

    match = _RELATIVE_PATTERN.match(normalized)
    if not match:
        return ParseFailure(text, "unrecognized phrasing")

    amount_text, unit = match.groups()
    if not (amount_text.isascii() and amount_text.isdigit()):
        return ParseFailure(text, f"amount {amount_text!r} is not a positive integer")

    amount = int(amount_text)
    if amount <= 0:
        return ParseFailure(text, "amount must be positive")

    return reference - _UNIT_DELTAS[unit](amount)


def is_parse_failure(value) -> bool:
    return isinstance(value, ParseFailure)

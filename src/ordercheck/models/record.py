#!/usr/bin/env python3
"""
Record data model.

One listing entry as read from the page.
"""

from datetime import datetime
from typing import Dict, Any, Optional
from dataclasses import dataclass

UNKNOWN_TITLE = "unknown"


@dataclass
class Record:
    """
    A single listing entry.

    ``title`` holds UNKNOWN_TITLE when no extraction strategy produced a
    valid title. ``timestamp`` is always set for records leaving the
    collector; the validator still tolerates None.
    """
    id: str
    raw_time_text: str
    timestamp: Optional[datetime]
    title: Optional[str] = UNKNOWN_TITLE
    source_url: Optional[str] = None
    score: Optional[int] = 0
    author: Optional[str] = None
    extraction_attempt: int = 1

    def __post_init__(self):
        self.id = str(self.id).strip()
        if isinstance(self.title, str):
            self.title = self.title.strip() or UNKNOWN_TITLE
        if isinstance(self.author, str):
            self.author = self.author.strip() or None
        if self.score is not None and self.score < 0:
            self.score = 0
        self.extraction_attempt = max(1, self.extraction_attempt)

    @property
    def has_title(self) -> bool:
        return bool(self.title) and self.title != UNKNOWN_TITLE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'title': self.title,
            'source_url': self.source_url,
            'score': self.score,
            'author': self.author,
            'raw_time_text': self.raw_time_text,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
            'extraction_attempt': self.extraction_attempt
        }

    def __repr__(self):
        title = (self.title or '')[:40]
        return f"Record(id='{self.id}', title='{title}', time='{self.raw_time_text}')"

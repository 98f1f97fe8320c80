#!/usr/bin/env python3
"""
Structured collector events.

The collector reports progress, retries and degradation as CollectorEvent
values through an injected sink instead of writing logs itself.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import pytz

logger = logging.getLogger(__name__)

# Event kinds
PAGE_STARTED = "page_started"
PAGE_COMPLETED = "page_completed"
PAGE_RETRY = "page_retry"
PAGE_SKIPPED = "page_skipped"
READINESS_FALLBACK = "readiness_fallback"
READINESS_DEGRADED = "readiness_degraded"
RECORD_RETRY = "record_retry"
RECORD_DROPPED = "record_dropped"
RECORD_DUPLICATE = "record_duplicate"
SCREENSHOT_SAVED = "screenshot_saved"
SCREENSHOT_FAILED = "screenshot_failed"
COLLECTION_FINISHED = "collection_finished"


@dataclass(frozen=True)
class CollectorEvent:
    kind: str
    message: str
    page_number: Optional[int] = None
    url: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(pytz.UTC))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind,
            'message': self.message,
            'page_number': self.page_number,
            'url': self.url,
            'data': dict(self.data),
            'timestamp': self.timestamp.isoformat()
        }


EventSink = Callable[[CollectorEvent], None]

_LEVELS = {
    PAGE_STARTED: logging.INFO,
    PAGE_COMPLETED: logging.INFO,
    COLLECTION_FINISHED: logging.INFO,
    SCREENSHOT_SAVED: logging.INFO,
    PAGE_RETRY: logging.WARNING,
    READINESS_FALLBACK: logging.WARNING,
    READINESS_DEGRADED: logging.WARNING,
    SCREENSHOT_FAILED: logging.WARNING,
    PAGE_SKIPPED: logging.ERROR,
    RECORD_RETRY: logging.DEBUG,
    RECORD_DROPPED: logging.DEBUG,
    RECORD_DUPLICATE: logging.DEBUG,
}


class LoggingEventSink:
    """Forwards collector events to a logger at a level chosen by kind."""

    def __init__(self, target: Optional[logging.Logger] = None, prefix: str = ""):
        self.logger = target or logger
        self.prefix = prefix

    def __call__(self, event: CollectorEvent) -> None:
        level = _LEVELS.get(event.kind, logging.INFO)
        page = f" page {event.page_number}" if event.page_number is not None else ""
        self.logger.log(level, f"{self.prefix}[{event.kind}]{page} {event.message}")


class RecordingEventSink:
    """Keeps every event in memory; used for run reports."""

    def __init__(self, forward_to: Optional[EventSink] = None):
        self.events: List[CollectorEvent] = []
        self._forward_to = forward_to

    def __call__(self, event: CollectorEvent) -> None:
        self.events.append(event)
        if self._forward_to is not None:
            self._forward_to(event)

    def of_kind(self, kind: str) -> List[CollectorEvent]:
        return [event for event in self.events if event.kind == kind]


def null_sink(event: CollectorEvent) -> None:
    pass

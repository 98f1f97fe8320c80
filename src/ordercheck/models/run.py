#!/usr/bin/env python3
"""
Collection run models.
"""

from datetime import datetime
from typing import Dict, Any, List, Optional, Tuple
from dataclasses import dataclass, field

from .record import Record
from .validation import ValidationResult
from .metrics import QualityMetricsSnapshot

# Why a collection loop stopped
STOP_TARGET_REACHED = "target_reached"
STOP_NO_NEXT_PAGE = "no_next_page"
STOP_PAGE_CEILING = "page_ceiling"
STOP_PAGE_FAILED = "page_failed"


@dataclass(frozen=True)
class PerformanceMetrics:
    """Navigation timing captured on the first page, in milliseconds."""
    load_time_ms: float = 0.0
    dom_content_loaded_ms: float = 0.0
    first_contentful_paint_ms: float = 0.0
    total_bytes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'load_time_ms': self.load_time_ms,
            'dom_content_loaded_ms': self.dom_content_loaded_ms,
            'first_contentful_paint_ms': self.first_contentful_paint_ms,
            'total_bytes': self.total_bytes
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'PerformanceMetrics':
        data = data or {}
        return cls(
            load_time_ms=float(data.get('load_time_ms', 0.0) or 0.0),
            dom_content_loaded_ms=float(data.get('dom_content_loaded_ms', 0.0) or 0.0),
            first_contentful_paint_ms=float(data.get('first_contentful_paint_ms', 0.0) or 0.0),
            total_bytes=int(data.get('total_bytes', 0) or 0)
        )


@dataclass(frozen=True)
class RunResult:
    """Everything one collection run produced."""
    engine: str
    viewport: str
    records: Tuple[Record, ...]
    performance: PerformanceMetrics
    started_at: datetime
    duration_ms: float
    target_count: int
    pages_visited: int
    stop_reason: str
    skipped_pages: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def degraded(self) -> bool:
        """Fewer records than requested."""
        return len(self.records) < self.target_count

    @property
    def record_count(self) -> int:
        return len(self.records)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'engine': self.engine,
            'viewport': self.viewport,
            'records': [record.to_dict() for record in self.records],
            'record_count': self.record_count,
            'performance': self.performance.to_dict(),
            'started_at': self.started_at.isoformat(),
            'duration_ms': self.duration_ms,
            'target_count': self.target_count,
            'pages_visited': self.pages_visited,
            'stop_reason': self.stop_reason,
            'skipped_pages': list(self.skipped_pages),
            'degraded': self.degraded
        }


@dataclass
class RunOutcome:
    """
    Outcome of one engine/viewport combination.

    A failed combination keeps its error instead of a run; the matrix
    carries on with the next one.
    """
    engine: str
    viewport: str
    run: Optional[RunResult] = None
    validation: Optional[ValidationResult] = None
    summary: Optional[Dict[str, Any]] = None
    quality: Optional[QualityMetricsSnapshot] = None
    error: Optional[Dict[str, Any]] = None
    events: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.error is not None or self.run is None or self.validation is None

    def to_dict(self, include_records: bool = True) -> Dict[str, Any]:
        run = self.run.to_dict() if self.run else None
        if run is not None and not include_records:
            run.pop('records', None)
        return {
            'engine': self.engine,
            'viewport': self.viewport,
            'failed': self.failed,
            'run': run,
            'validation': self.validation.to_dict() if self.validation else None,
            'summary': self.summary,
            'quality': self.quality.to_dict() if self.quality else None,
            'error': self.error,
            'events': list(self.events)
        }

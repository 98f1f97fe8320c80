#!/usr/bin/env python3
"""
Validation result models.

Immutable outputs of the sorting validator. All of them serialize to plain
dictionaries so reports and the metrics history can store them as JSON.
"""

from datetime import datetime
from typing import Dict, Any, Optional, Tuple
from dataclasses import dataclass, field

# Anomaly kinds
SORTING_ERROR = "sorting_error"
LARGE_TIME_JUMP = "large_time_jump"
DUPLICATE_TIMESTAMP = "duplicate_timestamp"

# Data issue kinds and their severities
MISSING_TITLE = "missing_title"
MISSING_TIMESTAMP = "missing_timestamp"
MISSING_AUTHOR = "missing_author"
MISSING_SCORE = "missing_score"

ISSUE_SEVERITY = {
    MISSING_TITLE: "high",
    MISSING_TIMESTAMP: "critical",
    MISSING_AUTHOR: "low",
    MISSING_SCORE: "medium",
}

BUCKET_NAMES = ('last_hour', 'last_6_hours', 'last_24_hours', 'last_week', 'older')


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class SortingAccuracy:
    """Pairwise ordering accuracy over adjacent, comparable records."""
    accuracy: float
    total_pairs: int
    correct_pairs: int
    incorrect_pairs: int
    error_rate: float
    skipped_pairs: int = 0
    skipped_positions: Tuple[int, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'accuracy': self.accuracy,
            'total_pairs': self.total_pairs,
            'correct_pairs': self.correct_pairs,
            'incorrect_pairs': self.incorrect_pairs,
            'error_rate': self.error_rate,
            'skipped_pairs': self.skipped_pairs,
            'skipped_positions': list(self.skipped_positions)
        }


@dataclass(frozen=True)
class Anomaly:
    """
    One irregularity in the sequence.

    ``position`` is the index of the first record of the offending pair.
    ``related_position`` is the second record of the pair, or for
    duplicates the index of the first occurrence.
    """
    kind: str
    position: int
    related_position: Optional[int]
    record_id: Optional[str] = None
    gap_minutes: Optional[float] = None
    timestamp: Optional[datetime] = None

    @property
    def is_critical(self) -> bool:
        return self.kind == SORTING_ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.kind,
            'position': self.position,
            'related_position': self.related_position,
            'record_id': self.record_id,
            'gap_minutes': self.gap_minutes,
            'timestamp': _iso(self.timestamp)
        }


@dataclass(frozen=True)
class AnomalyPatterns:
    consecutive_errors: int = 0
    large_time_jumps: int = 0
    duplicate_timestamps: int = 0
    sorting_errors: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'consecutive_errors': self.consecutive_errors,
            'large_time_jumps': self.large_time_jumps,
            'duplicate_timestamps': self.duplicate_timestamps,
            'sorting_errors': self.sorting_errors
        }


@dataclass(frozen=True)
class AnomalyReport:
    anomalies: Tuple[Anomaly, ...]
    patterns: AnomalyPatterns

    @property
    def total_anomalies(self) -> int:
        return len(self.anomalies)

    @property
    def critical_issues(self) -> int:
        return sum(1 for anomaly in self.anomalies if anomaly.is_critical)

    @property
    def warnings(self) -> int:
        return self.total_anomalies - self.critical_issues

    def of_kind(self, kind: str) -> Tuple[Anomaly, ...]:
        return tuple(anomaly for anomaly in self.anomalies if anomaly.kind == kind)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'anomalies': [anomaly.to_dict() for anomaly in self.anomalies],
            'patterns': self.patterns.to_dict(),
            'summary': {
                'total_anomalies': self.total_anomalies,
                'critical_issues': self.critical_issues,
                'warnings': self.warnings
            }
        }


@dataclass(frozen=True)
class TimestampDistribution:
    """Age buckets and gap statistics of the sequence."""
    bucket_counts: Dict[str, int]
    average_gap_minutes: float
    min_gap_minutes: float
    max_gap_minutes: float
    oldest: Optional[datetime]
    newest: Optional[datetime]
    valid_timestamps: int
    total_records: int

    @property
    def time_span_minutes(self) -> float:
        if not self.oldest or not self.newest:
            return 0.0
        return (self.newest - self.oldest).total_seconds() / 60.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bucket_counts': dict(self.bucket_counts),
            'average_gap_minutes': self.average_gap_minutes,
            'min_gap_minutes': self.min_gap_minutes,
            'max_gap_minutes': self.max_gap_minutes,
            'oldest': _iso(self.oldest),
            'newest': _iso(self.newest),
            'time_span_minutes': self.time_span_minutes,
            'valid_timestamps': self.valid_timestamps,
            'total_records': self.total_records
        }


@dataclass(frozen=True)
class DataIssue:
    kind: str
    position: int
    record_id: str

    @property
    def severity(self) -> str:
        return ISSUE_SEVERITY[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.kind,
            'position': self.position,
            'record_id': self.record_id,
            'severity': self.severity
        }


@dataclass(frozen=True)
class DataValidation:
    """Field completeness across the collected records."""
    completeness_ratio: float
    missing_counts: Dict[str, int]
    issues: Tuple[DataIssue, ...]
    total: int
    complete: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'completeness_ratio': self.completeness_ratio,
            'missing_counts': dict(self.missing_counts),
            'issues': [issue.to_dict() for issue in self.issues],
            'total': self.total,
            'complete': self.complete
        }


@dataclass(frozen=True)
class ValidationResult:
    sorting_accuracy: SortingAccuracy
    anomalies: AnomalyReport
    timestamp_distribution: TimestampDistribution
    data_validation: DataValidation
    generated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sorting_accuracy': self.sorting_accuracy.to_dict(),
            'anomalies': self.anomalies.to_dict(),
            'timestamp_distribution': self.timestamp_distribution.to_dict(),
            'data_validation': self.data_validation.to_dict(),
            'generated_at': self.generated_at.isoformat()
        }

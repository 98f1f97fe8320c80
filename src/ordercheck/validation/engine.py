#!/usr/bin/env python3
"""
Sorting Validation Engine

Pure analysis of a record sequence that is supposed to be in
reverse-chronological order. Nothing here performs I/O, mutates its input
or decides pass/fail; thresholds are applied by the run summary.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from ordercheck.exceptions import ValidationInputError
from ordercheck.models.record import Record, UNKNOWN_TITLE
from ordercheck.models.validation import (
    SortingAccuracy, Anomaly, AnomalyPatterns, AnomalyReport, TimestampDistribution,
    DataIssue, DataValidation, ValidationResult, BUCKET_NAMES,
    SORTING_ERROR, LARGE_TIME_JUMP, DUPLICATE_TIMESTAMP,
    MISSING_TITLE, MISSING_TIMESTAMP, MISSING_AUTHOR, MISSING_SCORE
)
from ordercheck.time_parser import now_utc

logger = logging.getLogger(__name__)

LARGE_JUMP_MINUTES = 60

# Upper bound in hours of each age bucket; anything beyond goes to 'older'
_BUCKET_LIMITS = (
    ('last_hour', 1),
    ('last_6_hours', 6),
    ('last_24_hours', 24),
    ('last_week', 168),
)


def _minutes_between(earlier_in_list: datetime, later_in_list: datetime) -> float:
    """Gap between adjacent records; positive when correctly ordered."""
    return (earlier_in_list - later_in_list).total_seconds() / 60.0


def _minute_key(timestamp: datetime) -> datetime:
    return timestamp.replace(second=0, microsecond=0)


class SortingValidator:
    """Scores ordering, finds anomalies and profiles timestamps of a record sequence."""

    def __init__(self, large_jump_minutes: float = LARGE_JUMP_MINUTES):
        self.large_jump_minutes = large_jump_minutes

    def validate(self, records: Sequence[Record], generated_at: Optional[datetime] = None) -> ValidationResult:
        """
        Analyze a record sequence.

        Args:
            records: Records in listing order (newest expected first)
            generated_at: Instant the listing was read; age buckets are relative to it

        Returns:
            ValidationResult

        Raises:
            ValidationInputError: If records is not a sequence of Record
        """
        self._check_input(records)
        generated_at = generated_at or now_utc()

        result = ValidationResult(
            sorting_accuracy=self.sorting_accuracy(records),
            anomalies=self.detect_anomalies(records),
            timestamp_distribution=self.timestamp_distribution(records, generated_at),
            data_validation=self.data_completeness(records),
            generated_at=generated_at
        )
        logger.debug(f"Validated {len(records)} records: accuracy {result.sorting_accuracy.accuracy}%, "
                     f"{result.anomalies.total_anomalies} anomalies")
        return result

    def _check_input(self, records) -> None:
        if isinstance(records, (str, bytes)) or not hasattr(records, '__len__'):
            raise ValidationInputError('records', records, 'a sequence of Record')
        for record in records:
            if not isinstance(record, Record):
                raise ValidationInputError('records[]', record, 'Record')

    def sorting_accuracy(self, records: Sequence[Record]) -> SortingAccuracy:
        """Share of adjacent comparable pairs where the first is not older than the second."""
        correct = 0
        incorrect = 0
        skipped_positions: List[int] = []

        for i in range(len(records) - 1):
            current, following = records[i].timestamp, records[i + 1].timestamp
            if current is None or following is None:
                skipped_positions.append(i)
                continue
            if current >= following:
                correct += 1
            else:
                incorrect += 1

        total = correct + incorrect
        if total == 0:
            return SortingAccuracy(
                accuracy=100.0, total_pairs=0, correct_pairs=0, incorrect_pairs=0, error_rate=0.0,
                skipped_pairs=len(skipped_positions), skipped_positions=tuple(skipped_positions)
            )

        return SortingAccuracy(
            accuracy=round(correct / total * 100, 2),
            total_pairs=total,
            correct_pairs=correct,
            incorrect_pairs=incorrect,
            error_rate=round(incorrect / total * 100, 2),
            skipped_pairs=len(skipped_positions),
            skipped_positions=tuple(skipped_positions)
        )

    def detect_anomalies(self, records: Sequence[Record]) -> AnomalyReport:
        """
        Single left-to-right pass over the sequence.

        Every out-of-order pair is reported. Large jumps use the absolute gap.
        Duplicates are keyed on the timestamp truncated to the minute and point
        back at the first record with that minute.
        """
        anomalies: List[Anomaly] = []
        first_seen: Dict[datetime, int] = {}
        run = 0
        longest_run = 0
        sorting_errors = 0
        large_jumps = 0
        duplicates = 0

        for i, record in enumerate(records):
            if record.timestamp is not None:
                key = _minute_key(record.timestamp)
                if key in first_seen:
                    duplicates += 1
                    anomalies.append(Anomaly(
                        kind=DUPLICATE_TIMESTAMP, position=i, related_position=first_seen[key],
                        record_id=record.id, timestamp=record.timestamp
                    ))
                else:
                    first_seen[key] = i

            if i == len(records) - 1:
                break

            following = records[i + 1]
            if record.timestamp is None or following.timestamp is None:
                continue

            gap = _minutes_between(record.timestamp, following.timestamp)

            if gap < 0:
                sorting_errors += 1
                run += 1
                longest_run = max(longest_run, run)
                anomalies.append(Anomaly(
                    kind=SORTING_ERROR, position=i, related_position=i + 1,
                    record_id=record.id, gap_minutes=round(abs(gap), 2), timestamp=record.timestamp
                ))
            else:
                run = 0

            if abs(gap) > self.large_jump_minutes:
                large_jumps += 1
                anomalies.append(Anomaly(
                    kind=LARGE_TIME_JUMP, position=i, related_position=i + 1,
                    record_id=record.id, gap_minutes=round(gap, 2), timestamp=record.timestamp
                ))

        patterns = AnomalyPatterns(
            consecutive_errors=longest_run,
            large_time_jumps=large_jumps,
            duplicate_timestamps=duplicates,
            sorting_errors=sorting_errors
        )
        return AnomalyReport(anomalies=tuple(anomalies), patterns=patterns)

    def timestamp_distribution(self, records: Sequence[Record], generated_at: datetime) -> TimestampDistribution:
        """Age buckets relative to ``generated_at`` and gap statistics between consecutive valid timestamps."""
        timestamps = [record.timestamp for record in records if record.timestamp is not None]
        buckets = {name: 0 for name in BUCKET_NAMES}

        for timestamp in timestamps:
            # Whole elapsed hours, truncated
            age_hours = int((generated_at - timestamp).total_seconds() / 3600)
            buckets[self._bucket_for(age_hours)] += 1

        gaps = [_minutes_between(a, b) for a, b in zip(timestamps, timestamps[1:])]

        return TimestampDistribution(
            bucket_counts=buckets,
            average_gap_minutes=round(sum(gaps) / len(gaps), 2) if gaps else 0.0,
            min_gap_minutes=round(min(gaps), 2) if gaps else 0.0,
            max_gap_minutes=round(max(gaps), 2) if gaps else 0.0,
            oldest=min(timestamps) if timestamps else None,
            newest=max(timestamps) if timestamps else None,
            valid_timestamps=len(timestamps),
            total_records=len(records)
        )

    @staticmethod
    def _bucket_for(age_hours: int) -> str:
        for name, limit in _BUCKET_LIMITS:
            if age_hours <= limit:
                return name
        return 'older'

    def data_completeness(self, records: Sequence[Record]) -> DataValidation:
        """Missing-field counts; a record is complete only when all four fields are present."""
        missing = {MISSING_TITLE: 0, MISSING_TIMESTAMP: 0, MISSING_AUTHOR: 0, MISSING_SCORE: 0}
        issues: List[DataIssue] = []
        complete = 0

        for position, record in enumerate(records):
            found = self._missing_fields(record)
            for kind in found:
                missing[kind] += 1
                issues.append(DataIssue(kind=kind, position=position, record_id=record.id))
            if not found:
                complete += 1

        total = len(records)
        return DataValidation(
            completeness_ratio=round(complete / total * 100, 2) if total else 0.0,
            missing_counts={kind.replace('missing_', ''): count for kind, count in missing.items()},
            issues=tuple(issues),
            total=total,
            complete=complete
        )

    @staticmethod
    def _missing_fields(record: Record) -> Tuple[str, ...]:
        found = []
        if not record.title or not record.title.strip() or record.title == UNKNOWN_TITLE:
            found.append(MISSING_TITLE)
        if record.timestamp is None:
            found.append(MISSING_TIMESTAMP)
        if not record.author:
            found.append(MISSING_AUTHOR)
        if record.score is None:
            found.append(MISSING_SCORE)
        return tuple(found)

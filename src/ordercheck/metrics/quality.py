#!/usr/bin/env python3
"""
Quality Metrics Aggregator

Folds a run, its validation result and optional external signals into a
weighted quality score with a letter grade, and records it in the metrics
history. Absent external signals fall back to neutral defaults (security 95,
every API sub-metric 100).
"""

import math
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from ordercheck.config import ThresholdConfig
from ordercheck.exceptions import HistoryError, ValidationInputError
from ordercheck.metrics.history import MetricsHistoryRepository
from ordercheck.metrics.trends import metric_trend, analyze_trends
from ordercheck.models.metrics import (
    MetricScore, CategoryScore, OverallScore, QualityMetricsSnapshot, PASS, FAIL, WARN,
    FUNCTIONAL, PERFORMANCE, SECURITY, DATA_QUALITY, API_QUALITY
)
from ordercheck.models.run import RunResult
from ordercheck.models.validation import ValidationResult
from ordercheck.time_parser import now_utc

logger = logging.getLogger(__name__)

CATEGORY_WEIGHTS: Dict[str, float] = {
    FUNCTIONAL: 0.35,
    PERFORMANCE: 0.20,
    SECURITY: 0.15,
    DATA_QUALITY: 0.20,
    API_QUALITY: 0.10,
}

SEVERITY_DEDUCTIONS = {'high': 20, 'medium': 5, 'low': 1}
DEFAULT_SECURITY_SCORE = 95.0
NEUTRAL_API_SCORE = 100.0

# Share of the target that counts as a full extraction
EXTRACTION_FULL_SHARE = 0.9
MAX_CRITICAL_ISSUES = 5
CONSISTENCY_THRESHOLD = 80.0
CONSISTENCY_PENALTY = 10

GRADE_BANDS = (
    (95, 'A+'),
    (90, 'A'),
    (85, 'B+'),
    (80, 'B'),
    (75, 'C+'),
    (70, 'C'),
    (65, 'D+'),
    (60, 'D'),
)


@dataclass(frozen=True)
class SecurityFinding:
    severity: str
    description: str = ""


@dataclass(frozen=True)
class SecuritySignal:
    """Findings reported by an external security probe."""
    findings: Tuple[SecurityFinding, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ApiSignal:
    """Results of an external API cross-check; None fields count as neutral."""
    available: bool = True
    average_response_ms: Optional[float] = None
    data_integrity: Optional[float] = None
    contract_compliance: Optional[float] = None


@dataclass(frozen=True)
class ExternalSignals:
    security: Optional[SecuritySignal] = None
    api: Optional[ApiSignal] = None


def grade_for(score: float) -> str:
    for floor, grade in GRADE_BANDS:
        if score >= floor:
            return grade
    return 'F'


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def security_score(signal: Optional[SecuritySignal]) -> float:
    if signal is None:
        return DEFAULT_SECURITY_SCORE
    deductions = sum(SEVERITY_DEDUCTIONS.get(finding.severity, 0) for finding in signal.findings)
    return float(max(0, 100 - deductions))


class QualityMetricsAggregator:
    """Scores runs and appends the results to an injected history."""

    def __init__(self,
                 history: MetricsHistoryRepository,
                 thresholds: Optional[ThresholdConfig] = None,
                 clock: Callable[[], datetime] = now_utc):
        """
        Initialize aggregator; loads the history once if it is not loaded yet.

        Args:
            history: Metrics history repository
            thresholds: Pass/fail thresholds for individual metrics
            clock: Time source for snapshot timestamps
        """
        self.history = history
        self.thresholds = thresholds or ThresholdConfig()
        self._clock = clock
        if not self.history.loaded:
            self.history.load()

    def score(self,
              run: RunResult,
              validation: ValidationResult,
              signals: Optional[ExternalSignals] = None) -> QualityMetricsSnapshot:
        """
        Compute a quality snapshot without recording it.

        Raises:
            ValidationInputError: If run or validation are of the wrong type
        """
        if not isinstance(run, RunResult):
            raise ValidationInputError('run', run, 'RunResult')
        if not isinstance(validation, ValidationResult):
            raise ValidationInputError('validation', validation, 'ValidationResult')

        signals = signals or ExternalSignals()
        history = self.history.entries()

        categories = {
            FUNCTIONAL: self._functional(run, validation, history),
            PERFORMANCE: self._performance(run, history),
            SECURITY: self._security(signals.security, history),
            DATA_QUALITY: self._data_quality(validation, history),
            API_QUALITY: self._api_quality(signals.api),
        }

        timestamp = self._clock()
        return QualityMetricsSnapshot(
            timestamp=timestamp,
            run_id=f"run_{int(timestamp.timestamp() * 1000)}_{run.engine}_{run.viewport.lower()}",
            engine=run.engine,
            viewport=run.viewport,
            execution_time_ms=run.duration_ms,
            categories=categories,
            overall=self._overall(categories)
        )

    def record(self,
               run: RunResult,
               validation: ValidationResult,
               signals: Optional[ExternalSignals] = None) -> QualityMetricsSnapshot:
        """
        Score a run and append the snapshot to the history.

        A history write failure is logged; the snapshot is returned either way.
        """
        snapshot = self.score(run, validation, signals)
        try:
            self.history.append(snapshot)
        except HistoryError as e:
            logger.error(f"Could not record quality metrics for {run.engine}/{run.viewport}: {e.message}")
        logger.info(f"Quality score for {run.engine}/{run.viewport}: "
                    f"{snapshot.overall.value} ({snapshot.overall.grade})")
        return snapshot

    def _functional(self, run: RunResult, validation: ValidationResult, history) -> CategoryScore:
        accuracy = validation.sorting_accuracy.accuracy
        count = run.record_count
        target = max(run.target_count, 1)
        full = count >= EXTRACTION_FULL_SHARE * target
        completeness = 100.0 if full else count / target * 100
        critical = validation.anomalies.critical_issues
        consistency = float(max(0, 100 - CONSISTENCY_PENALTY * validation.anomalies.patterns.consecutive_errors))

        metrics = {
            'sorting_accuracy': MetricScore(
                value=accuracy,
                threshold=self.thresholds.quality_sorting_accuracy,
                status=PASS if accuracy >= self.thresholds.quality_sorting_accuracy else FAIL,
                trend=metric_trend(history, 'sorting_accuracy', accuracy)
            ),
            'extraction_completeness': MetricScore(
                value=completeness,
                threshold=EXTRACTION_FULL_SHARE * 100,
                status=PASS if full else WARN
            ),
            'error_rate': MetricScore(
                value=critical,
                threshold=MAX_CRITICAL_ISSUES,
                status=PASS if critical <= MAX_CRITICAL_ISSUES else FAIL,
                trend=metric_trend(history, 'error_rate', critical)
            ),
            'consistency': MetricScore(
                value=consistency,
                threshold=CONSISTENCY_THRESHOLD,
                status=PASS if consistency >= CONSISTENCY_THRESHOLD else FAIL
            ),
        }
        score = accuracy * 0.4 + completeness * 0.3 + consistency * 0.3
        return CategoryScore(FUNCTIONAL, score, metrics)

    def _performance(self, run: RunResult, history) -> CategoryScore:
        load_time = run.performance.load_time_ms
        score = min(100.0, max(0.0, 100 - load_time / 50))

        metrics = {
            'load_time': MetricScore(
                value=load_time,
                threshold=self.thresholds.performance_ms,
                status=PASS if load_time <= self.thresholds.performance_ms else FAIL,
                trend=metric_trend(history, 'load_time', load_time)
            ),
            'performance_score': MetricScore(
                value=score,
                threshold=self.thresholds.performance_score,
                status=PASS if score >= self.thresholds.performance_score else WARN,
                trend=metric_trend(history, 'performance_score', score)
            ),
        }
        return CategoryScore(PERFORMANCE, score, metrics)

    def _security(self, signal: Optional[SecuritySignal], history) -> CategoryScore:
        score = security_score(signal)
        high = sum(1 for finding in signal.findings if finding.severity == 'high') if signal else 0

        metrics = {
            'security_score': MetricScore(
                value=score,
                threshold=self.thresholds.security_score,
                status=PASS if score >= self.thresholds.security_score else FAIL,
                trend=metric_trend(history, 'security_score', score)
            ),
            'high_severity_findings': MetricScore(
                value=high,
                threshold=0,
                status=PASS if high == 0 else FAIL
            ),
        }
        return CategoryScore(SECURITY, score, metrics)

    def _data_quality(self, validation: ValidationResult, history) -> CategoryScore:
        data = validation.data_validation
        completeness = data.completeness_ratio
        if data.total:
            accuracy = max(0.0, 100 - len(data.issues) / data.total * 100)
            consistency = data.complete / data.total * 100
        else:
            accuracy = 0.0
            consistency = 0.0

        metrics = {
            'completeness': MetricScore(
                value=completeness,
                threshold=self.thresholds.data_completeness,
                status=PASS if completeness >= self.thresholds.data_completeness else FAIL,
                trend=metric_trend(history, 'data_completeness', completeness)
            ),
            'accuracy': MetricScore(value=accuracy, threshold=95, status=PASS if accuracy >= 95 else WARN),
            'consistency': MetricScore(value=consistency, threshold=90, status=PASS if consistency >= 90 else WARN),
        }
        score = completeness * 0.5 + accuracy * 0.3 + consistency * 0.2
        return CategoryScore(DATA_QUALITY, score, metrics)

    def _api_quality(self, signal: Optional[ApiSignal]) -> CategoryScore:
        if signal is None:
            metrics = {name: MetricScore(value=NEUTRAL_API_SCORE)
                       for name in ('availability', 'performance', 'data_integrity', 'contract_compliance')}
        else:
            availability = 100.0 if signal.available else 0.0
            if signal.average_response_ms is None:
                performance = NEUTRAL_API_SCORE
            else:
                performance = max(0.0, 100 - signal.average_response_ms / 20)
            integrity = NEUTRAL_API_SCORE if signal.data_integrity is None else signal.data_integrity
            compliance = NEUTRAL_API_SCORE if signal.contract_compliance is None else signal.contract_compliance
            metrics = {
                'availability': MetricScore(availability, 99, PASS if signal.available else FAIL),
                'performance': MetricScore(performance, 80, PASS if performance >= 80 else WARN),
                'data_integrity': MetricScore(integrity, 95, PASS if integrity >= 95 else FAIL),
                'contract_compliance': MetricScore(compliance, 95, PASS if compliance >= 95 else FAIL),
            }

        score = (metrics['availability'].value * 0.3 +
                 metrics['performance'].value * 0.3 +
                 metrics['data_integrity'].value * 0.2 +
                 metrics['contract_compliance'].value * 0.2)
        return CategoryScore(API_QUALITY, score, metrics)

    def _overall(self, categories: Dict[str, CategoryScore]) -> OverallScore:
        raw = sum(categories[name].score * weight for name, weight in CATEGORY_WEIGHTS.items())
        trends = {
            f"{category.name}.{name}": metric.trend
            for category in categories.values()
            for name, metric in category.metrics.items()
            if metric.trend is not None
        }
        return OverallScore(
            value=round_half_up(raw),
            raw_value=raw,
            threshold=self.thresholds.overall_quality,
            grade=grade_for(raw),
            status=PASS if raw >= self.thresholds.overall_quality else FAIL,
            components={name: round_half_up(category.score) for name, category in categories.items()},
            trends=trends
        )

    def quality_summary(self, snapshot: QualityMetricsSnapshot) -> Dict[str, Any]:
        """Compact summary of a snapshot together with the history trend analysis."""
        return {
            'overall_score': snapshot.overall.value,
            'grade': snapshot.overall.grade,
            'status': snapshot.overall.status,
            'components': dict(snapshot.overall.components),
            'trends': analyze_trends(self.history.entries(), self.thresholds),
            'timestamp': snapshot.timestamp.isoformat()
        }

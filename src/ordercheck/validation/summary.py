#!/usr/bin/env python3
"""
Run summary, gate checks and recommendations.

This is where pass/fail policy lives: the validator only measures, the
functions here compare the measurements against ThresholdConfig.
"""

import logging
import statistics
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from ordercheck.config import ThresholdConfig
from ordercheck.models.metrics import PASS, FAIL, WARN
from ordercheck.models.run import RunResult, RunOutcome
from ordercheck.models.validation import ValidationResult

logger = logging.getLogger(__name__)

# Below this accuracy the cross-page shuffling of the listing is still considered normal
INFORMATIONAL_ACCURACY = 50.0


@dataclass(frozen=True)
class CheckResult:
    name: str
    passed: bool
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'passed': self.passed, 'message': self.message}


def run_checks(run: RunResult, validation: ValidationResult, thresholds: ThresholdConfig) -> List[CheckResult]:
    """Gate checks for one run."""
    accuracy = validation.sorting_accuracy.accuracy
    missing_timestamps = sum(1 for record in run.records if record.timestamp is None)
    load_time = run.performance.load_time_ms
    consecutive = validation.anomalies.patterns.consecutive_errors

    return [
        CheckResult(
            'sorting_accuracy',
            accuracy >= thresholds.sorting_accuracy,
            f"Sorting accuracy {accuracy}% vs threshold {thresholds.sorting_accuracy}%"
        ),
        CheckResult(
            'timestamps_present',
            missing_timestamps == 0,
            f"{missing_timestamps} of {run.record_count} records have no timestamp"
        ),
        CheckResult(
            'performance',
            load_time <= thresholds.performance_ms,
            f"Page loaded in {load_time:.0f}ms vs threshold {thresholds.performance_ms}ms"
        ),
        CheckResult(
            'consecutive_errors',
            consecutive <= thresholds.max_consecutive_errors,
            f"{consecutive} consecutive sorting errors (max allowed: {thresholds.max_consecutive_errors})"
        ),
    ]


def build_recommendations(run: RunResult, validation: ValidationResult,
                          thresholds: ThresholdConfig) -> List[Dict[str, str]]:
    """Actionable notes for one run; a single success note when nothing stands out."""
    recommendations = []
    accuracy = validation.sorting_accuracy.accuracy
    consecutive = validation.anomalies.patterns.consecutive_errors
    completeness = validation.data_validation.completeness_ratio
    load_time = run.performance.load_time_ms

    if accuracy < thresholds.sorting_accuracy:
        recommendations.append({
            'type': 'critical',
            'message': f"Sorting accuracy is {accuracy}% - investigate the listing order",
            'priority': 'high'
        })
    elif accuracy < INFORMATIONAL_ACCURACY:
        recommendations.append({
            'type': 'info',
            'message': f"Sorting accuracy is {accuracy}% - consistent with cross-page reordering of the listing",
            'priority': 'info'
        })

    if consecutive > thresholds.max_consecutive_errors:
        recommendations.append({
            'type': 'warning',
            'message': f"Found {consecutive} consecutive sorting errors - may indicate a systematic issue",
            'priority': 'medium'
        })

    if completeness < thresholds.data_completeness:
        recommendations.append({
            'type': 'warning',
            'message': f"Data completeness is {completeness:.1f}% - check extraction selectors",
            'priority': 'medium'
        })

    if load_time > thresholds.performance_ms:
        recommendations.append({
            'type': 'performance',
            'message': f"Page load time {load_time:.0f}ms is slow",
            'priority': 'low'
        })

    if run.degraded:
        recommendations.append({
            'type': 'warning',
            'message': f"Collected {run.record_count} of {run.target_count} records ({run.stop_reason})",
            'priority': 'medium'
        })

    if not recommendations:
        recommendations.append({
            'type': 'success',
            'message': 'All checks passed',
            'priority': 'info'
        })

    return recommendations


def summarize_run(run: RunResult, validation: ValidationResult, thresholds: ThresholdConfig) -> Dict[str, Any]:
    """Per sub-category PASS/FAIL/WARN plus checks and recommendations."""
    accuracy = validation.sorting_accuracy
    completeness = validation.data_validation.completeness_ratio
    load_time = run.performance.load_time_ms
    sorting_status = PASS if accuracy.accuracy >= thresholds.sorting_accuracy else FAIL

    return {
        'test_summary': {
            'engine': run.engine,
            'viewport': run.viewport,
            'total_records': run.record_count,
            'status': sorting_status,
            'critical_issues': validation.anomalies.critical_issues,
            'degraded': run.degraded
        },
        'sorting': {
            'accuracy': accuracy.accuracy,
            'status': sorting_status,
            'correct_pairs': accuracy.correct_pairs,
            'incorrect_pairs': accuracy.incorrect_pairs
        },
        'data_quality': {
            'completeness': completeness,
            'status': PASS if completeness >= thresholds.data_completeness else WARN,
            'issues': len(validation.data_validation.issues)
        },
        'performance': {
            'load_time_ms': load_time,
            'status': PASS if load_time < thresholds.performance_ms else WARN
        },
        'checks': [check.to_dict() for check in run_checks(run, validation, thresholds)],
        'recommendations': build_recommendations(run, validation, thresholds)
    }


def _spread(values: Sequence[float]) -> Dict[str, float]:
    return {
        'mean': statistics.fmean(values),
        'min': min(values),
        'max': max(values),
        'std_dev': statistics.pstdev(values)
    }


def summarize_runs(outcomes: Sequence[RunOutcome]) -> Dict[str, Any]:
    """Aggregate statistics across the engine x viewport matrix."""
    if not outcomes:
        return {'error': 'No runs to analyze'}

    successful = [outcome for outcome in outcomes if not outcome.failed]
    failed = len(outcomes) - len(successful)
    execution = {
        'total_runs': len(outcomes),
        'success_rate': len(successful) / len(outcomes) * 100,
        'failure_rate': failed / len(outcomes) * 100
    }

    if not successful:
        return {'execution': execution, 'error': 'No successful runs to analyze'}

    load_times = [outcome.run.performance.load_time_ms for outcome in successful]
    accuracies = [outcome.validation.sorting_accuracy.accuracy for outcome in successful]
    counts = [outcome.run.record_count for outcome in successful]

    return {
        'execution': execution,
        'load_time_ms': _spread(load_times),
        'sorting_accuracy': _spread(accuracies),
        'average_record_count': statistics.fmean(counts)
    }

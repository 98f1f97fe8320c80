#!/usr/bin/env python3
"""
Quality trends.

Trend direction compares the mean of the newest three values against an
older baseline; a change of more than five percent either way counts as a
movement. Direction is literal: a rising value is "improving" whatever the
metric measures.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ordercheck.config import ThresholdConfig
from ordercheck.models.metrics import (
    QualityMetricsSnapshot, FUNCTIONAL, PERFORMANCE, SECURITY, DATA_QUALITY, API_QUALITY
)

logger = logging.getLogger(__name__)

IMPROVING = "improving"
DECLINING = "declining"
STABLE = "stable"

TREND_THRESHOLD_PERCENT = 5.0
TREND_HISTORY_WINDOW = 5
ANALYSIS_WINDOW = 10

# metric name -> (category, metric key inside the category)
TRACKED_METRICS: Dict[str, Tuple[str, str]] = {
    'sorting_accuracy': (FUNCTIONAL, 'sorting_accuracy'),
    'error_rate': (FUNCTIONAL, 'error_rate'),
    'load_time': (PERFORMANCE, 'load_time'),
    'performance_score': (PERFORMANCE, 'performance_score'),
    'security_score': (SECURITY, 'security_score'),
    'data_completeness': (DATA_QUALITY, 'completeness'),
}

TREND_CATEGORIES = ('overall', FUNCTIONAL, PERFORMANCE, SECURITY, DATA_QUALITY, API_QUALITY)


def trend_direction(values: Sequence[float]) -> str:
    """
    Direction of a series, oldest value first.

    The baseline is the fourth-newest value, or the oldest one when the
    series is shorter (or the fourth-newest is zero).
    """
    if len(values) < 2:
        return STABLE

    recent = values[-3:]
    average = sum(recent) / len(recent)
    baseline = values[-4] if len(values) >= 4 and values[-4] else values[0]

    if baseline == 0:
        if average > 0:
            return IMPROVING
        if average < 0:
            return DECLINING
        return STABLE

    change_percent = (average - baseline) / abs(baseline) * 100
    if change_percent > TREND_THRESHOLD_PERCENT:
        return IMPROVING
    if change_percent < -TREND_THRESHOLD_PERCENT:
        return DECLINING
    return STABLE


def metric_history_values(history: Sequence[QualityMetricsSnapshot], metric: str) -> List[float]:
    category, key = TRACKED_METRICS[metric]
    return [snapshot.metric_value(category, key) for snapshot in history]


def metric_trend(history: Sequence[QualityMetricsSnapshot], metric: str, current: float) -> str:
    """Trend of one tracked metric given the stored history and the current value."""
    recent = list(history)[-TREND_HISTORY_WINDOW:]
    if len(recent) < 2:
        return STABLE
    values = metric_history_values(recent, metric)
    values.append(current)
    return trend_direction(values)


def analyze_category(history: Sequence[QualityMetricsSnapshot], category: str) -> Dict[str, Any]:
    values = [snapshot.category_value(category) for snapshot in history]
    return {
        'current': values[-1],
        'previous': values[-2],
        'change': values[-1] - values[-2],
        'trend': trend_direction(values),
        'average': sum(values) / len(values),
        'min': min(values),
        'max': max(values)
    }


def quality_recommendations(snapshot: QualityMetricsSnapshot, thresholds: ThresholdConfig) -> List[Dict[str, str]]:
    """Threshold-based recommendations for the newest snapshot."""
    recommendations = []

    if snapshot.overall.value < thresholds.overall_quality:
        recommendations.append({
            'type': 'critical',
            'category': 'overall',
            'message': f"Overall quality score ({snapshot.overall.value}) is below threshold ({thresholds.overall_quality})",
            'priority': 'high'
        })

    sorting = snapshot.metric_value(FUNCTIONAL, 'sorting_accuracy')
    if sorting < thresholds.quality_sorting_accuracy:
        recommendations.append({
            'type': 'functional',
            'category': 'sorting',
            'message': f"Sorting accuracy ({sorting}%) needs improvement",
            'priority': 'high'
        })

    performance = snapshot.metric_value(PERFORMANCE, 'performance_score')
    if performance < thresholds.performance_score:
        recommendations.append({
            'type': 'performance',
            'category': 'speed',
            'message': f"Performance score ({performance:.1f}) is below threshold",
            'priority': 'medium'
        })

    security = snapshot.metric_value(SECURITY, 'security_score')
    if security < thresholds.security_score:
        recommendations.append({
            'type': 'security',
            'category': 'vulnerabilities',
            'message': f"Security score ({security}) needs attention",
            'priority': 'high'
        })

    completeness = snapshot.metric_value(DATA_QUALITY, 'completeness')
    if completeness < thresholds.data_completeness:
        recommendations.append({
            'type': 'data_quality',
            'category': 'completeness',
            'message': f"Data completeness ({completeness}%) is below threshold",
            'priority': 'medium'
        })

    return recommendations


def analyze_trends(history: Sequence[QualityMetricsSnapshot],
                   thresholds: Optional[ThresholdConfig] = None,
                   window: int = ANALYSIS_WINDOW) -> Dict[str, Any]:
    """Per-category trend analysis over the newest ``window`` snapshots."""
    if len(history) < 2:
        return {'message': 'Insufficient data for trend analysis'}

    recent = list(history)[-window:]
    analysis: Dict[str, Any] = {category: analyze_category(recent, category) for category in TREND_CATEGORIES}
    analysis['recommendations'] = quality_recommendations(recent[-1], thresholds or ThresholdConfig())
    return analysis

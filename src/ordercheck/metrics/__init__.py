#!/usr/bin/env python3
"""
Quality metrics: scoring, history and trends.
"""

from .history import MetricsHistoryRepository
from .quality import (
    QualityMetricsAggregator, ExternalSignals, SecuritySignal, SecurityFinding, ApiSignal, grade_for
)
from .trends import trend_direction, analyze_trends, IMPROVING, DECLINING, STABLE

__all__ = [
    'MetricsHistoryRepository', 'QualityMetricsAggregator', 'ExternalSignals', 'SecuritySignal',
    'SecurityFinding', 'ApiSignal', 'grade_for', 'trend_direction', 'analyze_trends',
    'IMPROVING', 'DECLINING', 'STABLE'
]

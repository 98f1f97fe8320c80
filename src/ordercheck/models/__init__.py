#!/usr/bin/env python3
"""
Data models for collection, validation and quality scoring.
"""

from .record import Record, UNKNOWN_TITLE
from .run import PerformanceMetrics, RunResult, RunOutcome
from .validation import (
    SortingAccuracy, Anomaly, AnomalyPatterns, AnomalyReport,
    TimestampDistribution, DataIssue, DataValidation, ValidationResult
)
from .metrics import MetricScore, CategoryScore, OverallScore, QualityMetricsSnapshot

__all__ = [
    'Record', 'UNKNOWN_TITLE', 'PerformanceMetrics', 'RunResult', 'RunOutcome',
    'SortingAccuracy', 'Anomaly', 'AnomalyPatterns', 'AnomalyReport',
    'TimestampDistribution', 'DataIssue', 'DataValidation', 'ValidationResult',
    'MetricScore', 'CategoryScore', 'OverallScore', 'QualityMetricsSnapshot'
]

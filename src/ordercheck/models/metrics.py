#!/usr/bin/env python3
"""
Quality metrics models.

A QualityMetricsSnapshot is what gets appended to the metrics history after
every completed run, so every model here round-trips through JSON.
"""

from datetime import datetime
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

from dateutil import parser as date_parser

PASS = "PASS"
FAIL = "FAIL"
WARN = "WARN"

FUNCTIONAL = "functional"
PERFORMANCE = "performance"
SECURITY = "security"
DATA_QUALITY = "data_quality"
API_QUALITY = "api_quality"

CATEGORIES = (FUNCTIONAL, PERFORMANCE, SECURITY, DATA_QUALITY, API_QUALITY)


@dataclass
class MetricScore:
    """A single measured value with the threshold it was judged against."""
    value: float
    threshold: Optional[float] = None
    status: str = PASS
    trend: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'value': self.value,
            'threshold': self.threshold,
            'status': self.status,
            'trend': self.trend
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MetricScore':
        return cls(
            value=data.get('value', 0) or 0,
            threshold=data.get('threshold'),
            status=data.get('status', PASS),
            trend=data.get('trend')
        )


@dataclass
class CategoryScore:
    """Score for one quality category plus the metrics it was built from."""
    name: str
    score: float
    metrics: Dict[str, MetricScore] = field(default_factory=dict)

    def metric(self, name: str) -> Optional[MetricScore]:
        return self.metrics.get(name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'score': self.score,
            'metrics': {name: metric.to_dict() for name, metric in self.metrics.items()}
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CategoryScore':
        return cls(
            name=data['name'],
            score=data.get('score', 0) or 0,
            metrics={name: MetricScore.from_dict(m) for name, m in data.get('metrics', {}).items()}
        )


@dataclass
class OverallScore:
    """
    Weighted overall quality.

    ``value`` is rounded for display; ``grade`` and ``status`` are decided on
    ``raw_value``.
    """
    value: int
    raw_value: float
    threshold: float
    grade: str
    status: str
    components: Dict[str, int] = field(default_factory=dict)
    trends: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'value': self.value,
            'raw_value': self.raw_value,
            'threshold': self.threshold,
            'grade': self.grade,
            'status': self.status,
            'components': dict(self.components),
            'trends': dict(self.trends)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OverallScore':
        value = data.get('value', 0) or 0
        return cls(
            value=value,
            raw_value=data.get('raw_value', value),
            threshold=data.get('threshold', 0),
            grade=data.get('grade', 'F'),
            status=data.get('status', FAIL),
            components=dict(data.get('components', {})),
            trends=dict(data.get('trends', {}))
        )


@dataclass
class QualityMetricsSnapshot:
    """Quality score of one run, as stored in the metrics history."""
    timestamp: datetime
    run_id: str
    engine: str
    viewport: str
    execution_time_ms: float
    categories: Dict[str, CategoryScore]
    overall: OverallScore

    def category(self, name: str) -> Optional[CategoryScore]:
        return self.categories.get(name)

    def metric_value(self, category: str, metric: str, default: float = 0) -> float:
        """Look up a metric value, falling back to ``default`` when absent."""
        category_score = self.categories.get(category)
        if category_score is None:
            return default
        metric_score = category_score.metric(metric)
        if metric_score is None or metric_score.value is None:
            return default
        return metric_score.value

    def category_value(self, category: str) -> float:
        """Category score, or the overall value for 'overall'."""
        if category == 'overall':
            return self.overall.value
        category_score = self.categories.get(category)
        return category_score.score if category_score else 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'timestamp': self.timestamp.isoformat(),
            'run': {
                'id': self.run_id,
                'engine': self.engine,
                'viewport': self.viewport,
                'execution_time_ms': self.execution_time_ms
            },
            'categories': {name: category.to_dict() for name, category in self.categories.items()},
            'overall': self.overall.to_dict()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QualityMetricsSnapshot':
        """Create from dictionary loaded from JSON."""
        run = data.get('run', {})
        timestamp = data['timestamp']
        if isinstance(timestamp, str):
            timestamp = date_parser.isoparse(timestamp)
        return cls(
            timestamp=timestamp,
            run_id=run.get('id', ''),
            engine=run.get('engine', ''),
            viewport=run.get('viewport', ''),
            execution_time_ms=run.get('execution_time_ms', 0) or 0,
            categories={name: CategoryScore.from_dict(c) for name, c in data.get('categories', {}).items()},
            overall=OverallScore.from_dict(data.get('overall', {}))
        )

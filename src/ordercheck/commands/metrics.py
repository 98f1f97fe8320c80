#!/usr/bin/env python3
"""
Metrics command: inspects the quality metrics history.
"""

from argparse import Namespace

from .base import BaseCommand
from ordercheck.formatters import format_history, format_trends
from ordercheck.metrics.trends import analyze_trends, ANALYSIS_WINDOW


class MetricsCommand(BaseCommand):
    """Quality history and trend reporting."""

    name = 'metrics'
    subcommands = {'trends': 'trends', 'history': 'history'}

    def _history(self):
        history = self.metrics_history
        if not history.loaded:
            history.load()
        return history

    def trends(self, args: Namespace) -> int:
        window = getattr(args, 'window', None) or ANALYSIS_WINDOW
        analysis = analyze_trends(self._history().entries(), self.config.thresholds, window)
        print(format_trends(analysis))
        return 0

    def history(self, args: Namespace) -> int:
        limit = getattr(args, 'limit', None) or 10
        print(format_history(self._history().recent(limit)))
        return 0

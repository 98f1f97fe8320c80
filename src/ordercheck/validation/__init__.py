#!/usr/bin/env python3
"""
Sorting validation and run summaries.
"""

from .engine import SortingValidator
from .summary import CheckResult, run_checks, build_recommendations, summarize_run, summarize_runs

__all__ = [
    'SortingValidator', 'CheckResult', 'run_checks', 'build_recommendations',
    'summarize_run', 'summarize_runs'
]

#!/usr/bin/env python3
"""
Validate command: runs the engine x viewport matrix against the listing.
"""

import asyncio
import logging
from argparse import Namespace
from typing import List, Optional, Tuple

from .base import BaseCommand
from ordercheck.config import Config, Viewport, VIEWPORTS
from ordercheck.formatters import format_report
from ordercheck.runner import write_report

logger = logging.getLogger(__name__)


def select_combinations(config: Config,
                        engines: Optional[List[str]] = None,
                        viewports: Optional[List[str]] = None) -> List[Tuple[str, Viewport]]:
    """Restrict the configured matrix to the requested engines and viewports."""
    engine_names = engines or config.browser.engines
    viewport_names = viewports or config.browser.viewports
    return [(engine, VIEWPORTS[name]) for engine in engine_names for name in viewport_names]


class ValidateCommand(BaseCommand):
    """Collect the newest listing and validate its ordering."""

    name = 'validate'
    subcommands = {'run': 'run'}

    def run(self, args: Namespace) -> int:
        config = self.config
        if getattr(args, 'target', None):
            config.collection.target_count = args.target
        if getattr(args, 'max_pages', None):
            config.collection.max_pages = args.max_pages

        combinations = select_combinations(config, getattr(args, 'engines', None), getattr(args, 'viewports', None))
        print(f"🔍 Validating ordering of {config.collection.listing_url} "
              f"across {len(combinations)} combination(s)")

        runner = self.runner
        report = asyncio.run(runner.run_matrix(
            combinations,
            preflight=not getattr(args, 'no_preflight', False),
            include_records=not getattr(args, 'no_records', False)
        ))

        print()
        print(format_report(report))

        output_dir = getattr(args, 'output', None) or config.app.reports_dir
        path = write_report(report, output_dir)
        print(f"\n💾 Report saved to {path}")

        failed = [run for run in report['runs'] if run['failed']]
        below_threshold = [
            run for run in report['runs']
            if not run['failed'] and run['summary']['sorting']['status'] != 'PASS'
        ]
        if failed or below_threshold:
            print(f"❌ {len(failed)} failed run(s), {len(below_threshold)} below the sorting threshold")
            return 1

        print("✅ All runs passed")
        return 0

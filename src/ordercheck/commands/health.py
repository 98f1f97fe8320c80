#!/usr/bin/env python3
"""
Health check command.

Checks configuration, listing reachability, the metrics history file and
whether the Playwright driver is importable.
"""

import importlib.util
import logging
from argparse import Namespace

from .base import BaseCommand
from ordercheck.browser.health import check_listing_available
from ordercheck.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class HealthCommand(BaseCommand):
    """System health monitoring and diagnostics."""

    name = 'health'
    subcommands = {'check': 'check'}

    def check(self, args: Namespace) -> int:
        """Run comprehensive health check."""
        print("🏥 System Health Check")
        print("=" * 50)

        overall_healthy = True

        print("\n⚙️  Configuration:")
        try:
            config = self.config
            print("  ✅ Configuration: OK")
            print(f"  🌐 Engines: {', '.join(config.browser.engines)}")
            print(f"  📐 Viewports: {', '.join(config.browser.viewports)}")
            print(f"  🎯 Target: {config.collection.target_count} records over at most "
                  f"{config.collection.max_pages} pages")
        except ConfigurationError as e:
            print(f"  ❌ Configuration: {e.message}")
            print("\n" + "=" * 50)
            print("❌ Overall Status: UNHEALTHY")
            return 1

        print("\n🔗 Listing:")
        status = check_listing_available(config.collection.listing_url, config.app.health_check_timeout)
        if status['available']:
            print(f"  ✅ {status['url']}: HTTP {status['status_code']} in {status['response_time_ms']:.0f}ms")
        else:
            detail = status.get('error') or f"HTTP {status.get('status_code')}"
            print(f"  ❌ {status['url']}: {detail}")
            overall_healthy = False

        print("\n📊 Metrics History:")
        history = self.metrics_history
        entries = history.load()
        print(f"  📋 {history.path}: {len(entries)} entries within {history.retention_days} days")

        print("\n🎭 Browser Driver:")
        if importlib.util.find_spec('playwright') is not None:
            print("  ✅ Playwright available")
        else:
            print("  ❌ Playwright is not installed")
            overall_healthy = False

        print("\n" + "=" * 50)
        if overall_healthy:
            print("✅ Overall Status: HEALTHY")
            return 0
        else:
            print("❌ Overall Status: UNHEALTHY")
            return 1

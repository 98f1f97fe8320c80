#!/usr/bin/env python3
"""
CLI router for the ordering validator.
"""

import argparse
import logging
import sys
from typing import Optional, List

from ordercheck.commands import get_command, COMMANDS
from ordercheck.config import get_config_manager, VIEWPORTS, ENGINE_TIMEOUTS
from ordercheck.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class CLIRouter:
    """
    CLI router for validation commands.

    Command structure:
    - python run.py validate run --engines chromium --viewports desktop
    - python run.py metrics trends
    - python run.py metrics history --limit 5
    - python run.py health check
    """

    def __init__(self, container=None):
        self._container = container
        self._command_parsers = {}
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Newest-listing ordering validator with quality metrics",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_examples_text()
        )

        subparsers = parser.add_subparsers(
            dest='command',
            help='Available commands',
            metavar='{command}'
        )

        self._add_validate_parser(subparsers)
        self._add_metrics_parser(subparsers)
        self._add_health_parser(subparsers)

        return parser

    def _add_validate_parser(self, subparsers):
        validate_parser = subparsers.add_parser(
            'validate',
            help='Collect the listing and validate its ordering'
        )
        self._command_parsers['validate'] = validate_parser

        validate_subparsers = validate_parser.add_subparsers(
            dest='subcommand',
            help='Validation operations',
            metavar='{run}'
        )

        run_parser = validate_subparsers.add_parser('run', help='Run the engine x viewport matrix')
        run_parser.add_argument('--engines', nargs='+', choices=sorted(ENGINE_TIMEOUTS), help='Engines to run (default: ENGINES)')
        run_parser.add_argument('--viewports', nargs='+', choices=list(VIEWPORTS), help='Viewports to run (default: VIEWPORTS)')
        run_parser.add_argument('--target', type=int, help='Number of records to collect (default: TARGET_COUNT)')
        run_parser.add_argument('--max-pages', type=int, help='Page ceiling (default: MAX_PAGES)')
        run_parser.add_argument('--no-preflight', action='store_true', help='Skip the HTTP availability check')
        run_parser.add_argument('--no-records', action='store_true', help='Leave collected records out of the report')
        run_parser.add_argument('--output', help='Report directory (default: REPORTS_DIR)')

    def _add_metrics_parser(self, subparsers):
        metrics_parser = subparsers.add_parser(
            'metrics',
            help='Quality metrics history and trends'
        )
        self._command_parsers['metrics'] = metrics_parser

        metrics_subparsers = metrics_parser.add_subparsers(
            dest='subcommand',
            help='Metrics operations',
            metavar='{trends,history}'
        )

        trends_parser = metrics_subparsers.add_parser('trends', help='Show quality trends')
        trends_parser.add_argument('--window', type=int, default=10, help='Snapshots to analyze (default: 10)')

        history_parser = metrics_subparsers.add_parser('history', help='Show recent quality snapshots')
        history_parser.add_argument('--limit', type=int, default=10, help='Snapshots to show (default: 10)')

    def _add_health_parser(self, subparsers):
        health_parser = subparsers.add_parser(
            'health',
            help='System health monitoring and diagnostics'
        )
        self._command_parsers['health'] = health_parser

        health_subparsers = health_parser.add_subparsers(
            dest='subcommand',
            help='Health operations',
            metavar='{check}'
        )

        health_subparsers.add_parser('check', help='Run comprehensive health check')

    def _get_examples_text(self) -> str:
        return """
Examples:
  # Full matrix from the environment configuration
  python run.py validate run

  # Single quick run
  python run.py validate run --engines chromium --viewports desktop --target 30

  # History
  python run.py metrics trends
  python run.py metrics history --limit 5
  python run.py health check
"""

    def route_command(self, args: Optional[List[str]] = None) -> int:
        """
        Route command to appropriate handler.

        Args:
            args: Command line arguments (uses sys.argv if None)

        Returns:
            Exit code
        """
        try:
            if args is None:
                args = sys.argv[1:]

            parsed_args = self.parser.parse_args(args)

            if not parsed_args.command:
                self.parser.print_help()
                return 1

            return self._handle_command(parsed_args)

        except SystemExit as e:
            # argparse calls sys.exit() on error or help
            return e.code if e.code is not None else 0
        except Exception as e:
            logger.error(f"CLI routing error: {e}", exc_info=True)
            return 1

    def _handle_command(self, args: argparse.Namespace) -> int:
        logger.debug(f"Handling command: {args.command}")

        if args.command not in COMMANDS:
            available = ', '.join(COMMANDS.keys())
            logger.error(f"Unknown command '{args.command}'. Available: {available}")
            return 1

        subcommand = getattr(args, 'subcommand', None)
        if not subcommand:
            logger.error(f"No subcommand specified for '{args.command}'")
            self._command_parsers[args.command].print_help()
            return 1

        command = get_command(args.command, self._container)
        return command.execute(subcommand, args)


def main(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        get_config_manager().update_logging()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e.message}")
        return 22

    router = CLIRouter()
    return router.route_command(args)


if __name__ == '__main__':
    sys.exit(main())

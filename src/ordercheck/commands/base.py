#!/usr/bin/env python3
"""
Base command class.

Commands resolve their services through the dependency injection container
so tests can swap in fakes.
"""

import logging
from abc import ABC, abstractmethod
from argparse import Namespace
from typing import List

from ordercheck.container import get_container
from ordercheck.exceptions import OrderCheckError, ConfigurationError, ValidationInputError

logger = logging.getLogger(__name__)


class BaseCommand(ABC):
    """Base class for all command endpoints."""

    # Subcommand name -> method name
    subcommands = {}

    def __init__(self, container=None):
        """
        Initialize base command with dependency injection container.

        Args:
            container: Optional container instance. If None, uses global container.
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self._container = container or get_container()

    @property
    def config(self):
        return self._container.get('config')

    @property
    def runner(self):
        return self._container.get('runner')

    @property
    def metrics_history(self):
        return self._container.get('metrics_history')

    def execute(self, subcommand: str, args: Namespace) -> int:
        """
        Dispatch to the handler registered for ``subcommand``.

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        handler_name = self.subcommands.get(subcommand)
        if handler_name is None:
            available = ", ".join(self.get_available_subcommands())
            self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
            return 1

        try:
            return getattr(self, handler_name)(args)
        except (KeyboardInterrupt, Exception) as e:
            return self.handle_error(e, f"{self.name} {subcommand}")

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    def get_available_subcommands(self) -> List[str]:
        return list(self.subcommands)

    def handle_error(self, error: BaseException, context: str = "") -> int:
        """
        Standard error handling for commands.

        Returns:
            Appropriate exit code
        """
        error_msg = f"{context}: {error}" if context else str(error)

        if isinstance(error, KeyboardInterrupt):
            self.logger.info("Command interrupted by user")
            return 130

        if isinstance(error, OrderCheckError):
            # Domain errors carry their own context; no traceback needed
            self.logger.error(f"{error_msg} ({error.error_code})")
        else:
            self.logger.error(error_msg, exc_info=True)

        if isinstance(error, FileNotFoundError):
            return 2
        elif isinstance(error, PermissionError):
            return 13
        elif isinstance(error, (ValueError, ConfigurationError, ValidationInputError)):
            return 22
        else:
            return 1

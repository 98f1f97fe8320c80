#!/usr/bin/env python3
"""
Engine profile registry.
"""

import logging
from typing import Dict, List, Optional, Type

from ordercheck.config import EngineTimeouts

from .base import EngineProfile
from .chromium import ChromiumProfile
from .firefox import FirefoxProfile

logger = logging.getLogger(__name__)


class EngineRegistry:
    """Maps engine names to profile classes."""

    def __init__(self):
        self._profiles: Dict[str, Type[EngineProfile]] = {}

    def register_profile(self, profile_class: Type[EngineProfile], name: Optional[str] = None):
        """
        Register a profile class.

        Args:
            profile_class: EngineProfile subclass to register
            name: Optional custom name (uses the class' ``name`` if not provided)
        """
        name = name or profile_class.name
        self._profiles[name] = profile_class
        logger.debug(f"Registered engine profile: {name}")

    def get_profile(self, name: str, timeouts: Optional[EngineTimeouts] = None, **kwargs) -> EngineProfile:
        """
        Create a profile instance.

        Raises:
            KeyError: If engine not registered
        """
        if name not in self._profiles:
            available = self.list_available_engines()
            raise KeyError(f"Engine '{name}' not found. Available: {available}")
        return self._profiles[name](timeouts, **kwargs)

    def list_available_engines(self) -> List[str]:
        return list(self._profiles.keys())


def create_default_registry() -> EngineRegistry:
    registry = EngineRegistry()
    registry.register_profile(ChromiumProfile)
    registry.register_profile(FirefoxProfile)
    return registry

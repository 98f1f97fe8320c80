#!/usr/bin/env python3
"""
Browser engine profiles.
"""

from .base import EngineProfile, ReadinessOutcome
from .chromium import ChromiumProfile
from .firefox import FirefoxProfile
from .registry import EngineRegistry, create_default_registry

__all__ = [
    'EngineProfile', 'ReadinessOutcome', 'ChromiumProfile', 'FirefoxProfile',
    'EngineRegistry', 'create_default_registry'
]

#!/usr/bin/env python3
"""
Chromium engine profile.
"""

from .base import EngineProfile


class ChromiumProfile(EngineProfile):
    """Chromium renders the listing quickly; the base defaults apply as-is."""

    name = "chromium"

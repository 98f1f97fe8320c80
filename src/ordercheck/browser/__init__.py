#!/usr/bin/env python3
"""
Browser access for listing collection.

Only the capability interface is imported eagerly; the Playwright adapter
lives in ordercheck.browser.playwright_page.
"""

from .base import ListingPage
from .health import check_listing_available

__all__ = ['ListingPage', 'check_listing_available']

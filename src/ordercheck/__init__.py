#!/usr/bin/env python3
"""
ordercheck - ordering validation for paginated "newest" listings.

Collects timestamped records across pages with a real browser, scores how
well the listing honours reverse-chronological order and keeps a rolling
quality history.
"""

__version__ = "1.0.0"

#!/usr/bin/env python3
"""
Pre-flight availability check for the listing.

A cheap HTTP HEAD before spending a browser launch on an unreachable site.
"""

import logging
from typing import Any, Dict

import requests

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; ordercheck/1.0)"


def check_listing_available(url: str, timeout: int = 10) -> Dict[str, Any]:
    """
    Check that the listing URL answers.

    Args:
        url: Listing URL
        timeout: Request timeout in seconds

    Returns:
        Health status dictionary with 'available' and either status details or 'error'
    """
    try:
        response = requests.head(
            url,
            timeout=timeout,
            allow_redirects=True,
            headers={'User-Agent': DEFAULT_USER_AGENT}
        )
        status = {
            'url': url,
            'available': response.status_code == 200,
            'status_code': response.status_code,
            'response_time_ms': response.elapsed.total_seconds() * 1000
        }
    except requests.RequestException as e:
        logger.warning(f"Listing {url} unreachable: {e}")
        return {
            'url': url,
            'available': False,
            'error': str(e)
        }

    if not status['available']:
        logger.warning(f"Listing {url} answered with HTTP {status['status_code']}")
    return status

#!/usr/bin/env python3
"""
Bounded async retry with linear backoff.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ordercheck.config import RetryConfig
from ordercheck.exceptions import ErrorRecovery

logger = logging.getLogger(__name__)

T = TypeVar('T')


async def retry_async(operation: Callable[[int], Awaitable[T]],
                      retry: RetryConfig,
                      on_retry: Optional[Callable[[int, Exception, float], None]] = None,
                      is_retryable: Callable[[Exception], bool] = ErrorRecovery.is_retryable_error) -> T:
    """
    Run ``operation(attempt)`` until it succeeds or the budget is spent.

    Attempts are numbered from 1. Between attempts the delay is
    ``retry.backoff_ms * attempt``. Errors that are not retryable, and the
    error of the last attempt, propagate unchanged.

    Args:
        operation: Coroutine factory taking the attempt number
        retry: Attempt budget and backoff
        on_retry: Called with (failed attempt, error, delay seconds) before sleeping
        is_retryable: Decides whether an error is worth another attempt
    """
    attempt = 1
    while True:
        try:
            return await operation(attempt)
        except Exception as e:
            if attempt >= retry.max_attempts or not is_retryable(e):
                raise
            delay = ErrorRecovery.get_retry_delay(attempt, retry.backoff_ms)
            if on_retry is not None:
                on_retry(attempt, e, delay)
            if delay:
                await asyncio.sleep(delay)
            attempt += 1

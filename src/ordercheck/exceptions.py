#!/usr/bin/env python3
"""
Exception hierarchy for ordercheck.

Collection failures carry the page, selector or record involved in their
context so that run reports can show where a run degraded.
"""

from typing import Optional, Dict, Any


class OrderCheckError(Exception):
    """Base exception for all ordercheck errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            context: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'context': self.context
        }


# Collection-related exceptions
class CollectionError(OrderCheckError):
    """Base exception for listing collection errors."""
    pass


class NavigationFailure(CollectionError):
    """Page load failed or exceeded the navigation timeout."""

    def __init__(self, url: str, timeout_ms: int, original_error: Optional[Exception] = None):
        message = f"Navigation to {url} failed (timeout {timeout_ms}ms)"
        context = {
            'url': url,
            'timeout_ms': timeout_ms,
            'original_error': str(original_error) if original_error else None
        }
        super().__init__(message, context=context)


class ReadinessTimeout(CollectionError):
    """No anchor selector resolved within the element timeout."""

    def __init__(self, selectors: list, timeout_ms: int):
        message = f"None of {len(selectors)} anchor selectors appeared within {timeout_ms}ms"
        context = {
            'selectors': list(selectors),
            'timeout_ms': timeout_ms
        }
        super().__init__(message, context=context)


class ExtractionFailure(CollectionError):
    """Reading a single record failed."""

    def __init__(self, record_id: str, reason: str, original_error: Optional[Exception] = None):
        message = f"Extraction of record {record_id} failed: {reason}"
        context = {
            'record_id': record_id,
            'reason': reason,
            'original_error': str(original_error) if original_error else None
        }
        super().__init__(message, context=context)


class RecordTimestampUnresolvable(ExtractionFailure):
    """No timestamp text for the record could be parsed."""

    def __init__(self, record_id: str, raw_texts: Optional[list] = None):
        super().__init__(record_id, "no parseable timestamp")
        self.context['raw_texts'] = list(raw_texts or [])


class PageInteractionFailure(CollectionError):
    """The browser failed while reading a loaded page."""

    def __init__(self, url: str, operation: str, original_error: Optional[Exception] = None):
        message = f"{operation} failed on {url}: {original_error}"
        context = {
            'url': url,
            'operation': operation,
            'original_error': str(original_error) if original_error else None
        }
        super().__init__(message, context=context)


class InsufficientFirstPageData(CollectionError):
    """The first page failed or produced no usable record."""

    def __init__(self, url: str, reason: str, screenshot_path: Optional[str] = None):
        message = f"First page {url} yielded no usable data: {reason}"
        context = {
            'url': url,
            'reason': reason,
            'screenshot_path': screenshot_path
        }
        super().__init__(message, context=context)


class BrowserLaunchError(CollectionError):
    """Browser engine could not be started."""

    def __init__(self, engine: str, original_error: Exception):
        message = f"Failed to launch {engine}"
        context = {
            'engine': engine,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


# History-related exceptions
class HistoryError(OrderCheckError):
    """Base exception for metrics history errors."""
    pass


class HistoryWriteError(HistoryError):
    """History file could not be rewritten."""

    def __init__(self, path: str, original_error: Exception):
        message = f"Failed to write metrics history to {path}"
        context = {
            'path': path,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


# Configuration-related exceptions
class ConfigurationError(OrderCheckError):
    """Configuration is invalid or missing."""

    def __init__(self, config_key: str, issue: str):
        message = f"Configuration error for {config_key}: {issue}"
        context = {
            'config_key': config_key,
            'issue': issue
        }
        super().__init__(message, context=context)


# Validation-related exceptions
class ValidationInputError(OrderCheckError):
    """Input handed to the validator or aggregator breaks its contract."""

    def __init__(self, field: str, value: Any, expected: str):
        message = f"Invalid input for {field}: expected {expected}, got {type(value).__name__}"
        context = {
            'field': field,
            'value': str(value),
            'expected': expected,
            'actual_type': type(value).__name__
        }
        super().__init__(message, context=context)


# Recovery utilities
class ErrorRecovery:
    """Utilities for error recovery and retry logic."""

    @staticmethod
    def is_retryable_error(error: Exception) -> bool:
        """Check if an error is potentially retryable."""
        retryable_types = [
            NavigationFailure,
            ReadinessTimeout,
            PageInteractionFailure,
            ExtractionFailure,
            TimeoutError,
            ConnectionError
        ]
        if isinstance(error, RecordTimestampUnresolvable):
            return False
        return any(isinstance(error, error_type) for error_type in retryable_types)

    @staticmethod
    def get_retry_delay(attempt: int, backoff_ms: int) -> float:
        """Linear backoff in seconds: backoff_ms * attempt."""
        return max(0, backoff_ms * attempt) / 1000.0

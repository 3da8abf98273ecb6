# pulse_chart/exceptions.py - Custom exceptions for the chart workstation
"""
Custom exception classes for the PulseChart package.
Transport failures, payload problems and clipboard failures each get their
own type so callers can degrade to the right fallback.
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ChartError(Exception):
    """
    [CLASS SUMMARY]
    Purpose: Base exception class for all PulseChart errors
    Usage: Base class for inheritance, rarely raised directly
    Attributes:
        - message: Error description
        - details: Additional context dictionary
        - timestamp: When the error occurred (UTC)
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)

    def __str__(self) -> str:
        """Format error message with details if available"""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ChartAPIError(ChartError):
    """
    [CLASS SUMMARY]
    Purpose: Raised when the data feed answers with an error status
    Common scenarios:
        - 400: Invalid symbol or parameters (never retried)
        - 404: Unknown symbol (never retried)
        - 5xx: Feed failure (retried, raised once retries are exhausted)
    """

    def __init__(self, message: str, status_code: Optional[int] = None,
                 response_body: Optional[str] = None, **kwargs):
        details = kwargs
        if status_code:
            details['status_code'] = status_code
        if response_body:
            details['response_body'] = response_body

        super().__init__(message, details)
        self.status_code = status_code
        self.response_body = response_body

    @property
    def retriable(self) -> bool:
        """429 and 5xx responses are worth another attempt"""
        return self.status_code == 429 or (self.status_code or 0) >= 500


class ChartRateLimitError(ChartAPIError):
    """
    [CLASS SUMMARY]
    Purpose: Raised when the feed rejects a request with HTTP 429
    Attributes:
        - retry_after: Seconds the feed asked us to wait, if it said
    """

    def __init__(self, message: str = "Rate limit exceeded",
                 retry_after: Optional[float] = None, **kwargs):
        details = kwargs
        if retry_after:
            details['retry_after'] = retry_after

        super().__init__(message, status_code=429, **details)
        self.retry_after = retry_after


class ChartNetworkError(ChartError):
    """Raised when the feed is unreachable (connection refused, DNS, timeout)"""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        details = kwargs
        if url:
            details['url'] = url
        super().__init__(message, details)
        self.url = url


class ChartDataError(ChartError):
    """
    [CLASS SUMMARY]
    Purpose: Raised when a feed payload cannot be turned into candles
    Common scenarios:
        - Body is not JSON
        - Missing 'data' / 'results' array
        - Required OHLC columns absent
    """

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        details = kwargs
        if field:
            details['field'] = field
        super().__init__(message, details)
        self.field = field


class ChartConfigurationError(ChartError):
    """Raised when a configuration value is missing or out of range"""

    def __init__(self, message: str, setting: Optional[str] = None, **kwargs):
        details = kwargs
        if setting:
            details['setting'] = setting
        super().__init__(message, details)
        self.setting = setting


class ClipboardUnavailableError(ChartError):
    """Raised when a snapshot cannot be placed on the system clipboard"""
    pass

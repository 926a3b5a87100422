"""
Error Infrastructure for Kite Blend

Forecast providers fail loudly, tide providers fail quietly:

- ProviderError: a single model endpoint returned a bad status, a malformed
  payload, or the model identifier is unknown. Raised to the caller.
- AllModelsFailedError: every base model failed during a blend. Raised.
- Tide fetch failures are never raised; they are categorized for the log
  and the caller falls back to simulation.

There is no retry logic here on purpose: a failed fetch is only retried by
the next independent call.
"""

import json
import logging
from enum import Enum
from typing import Dict, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)


class ErrorType(Enum):
    """Categories of errors for log lines."""
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    API_ERROR = "api_error"
    PARSE_ERROR = "parse_error"
    UNKNOWN = "unknown"


class ProviderError(Exception):
    """A model endpoint could not produce a usable forecast."""

    def __init__(self, message: str, model: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.model = model
        self.status_code = status_code


class AllModelsFailedError(Exception):
    """Raised when no base model survives a blend request."""

    def __init__(self, errors: Optional[Dict[str, BaseException]] = None):
        super().__init__("All models failed")
        self.errors: Dict[str, BaseException] = dict(errors or {})


def categorize_error(exception: BaseException) -> Tuple[ErrorType, str]:
    """
    Categorize an exception for tracking purposes.

    Returns:
        Tuple of (ErrorType, error_message)
    """
    error_msg = str(exception)[:200]  # Truncate long messages

    if isinstance(exception, httpx.TimeoutException):
        return (ErrorType.TIMEOUT, f"Timeout: {error_msg}")

    elif isinstance(exception, httpx.HTTPStatusError):
        status = exception.response.status_code
        if status in (402, 429):
            # Storm Glass answers 402 once the daily quota is spent
            return (ErrorType.RATE_LIMIT, f"HTTP {status} quota exceeded")
        return (ErrorType.API_ERROR, f"HTTP {status}: {error_msg}")

    elif isinstance(exception, ProviderError):
        if exception.status_code is not None:
            return (ErrorType.API_ERROR, f"HTTP {exception.status_code}: {error_msg}")
        return (ErrorType.PARSE_ERROR, f"Provider error: {error_msg}")

    elif isinstance(exception, httpx.RequestError):
        return (ErrorType.API_ERROR, f"Request error: {error_msg}")

    elif isinstance(exception, (json.JSONDecodeError, KeyError, ValueError, TypeError)):
        return (ErrorType.PARSE_ERROR, f"Parse error: {error_msg}")

    else:
        return (ErrorType.UNKNOWN, error_msg)

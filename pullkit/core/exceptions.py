"""Shared exceptions module."""

from enum import Enum
from typing import Optional


class PullkitException(Exception):
    """Base exception for pullkit."""

    pass


class ErrorCode(str, Enum):
    """Error codes surfaced to callers of an adapter.

    The values match the codes used by the adapter framework so that callers can
    map them without translation.
    """

    INVALID_DATASOURCE_CONFIG = "INVALID_DATASOURCE_CONFIG"
    INVALID_PAGE_REQUEST_CONFIG = "INVALID_PAGE_REQUEST_CONFIG"
    INVALID_ENTITY_CONFIG = "INVALID_ENTITY_CONFIG"
    INTERNAL = "INTERNAL"
    DATASOURCE_FAILED = "DATASOURCE_FAILED"


class AdapterError(PullkitException):
    """Exception raised when a page request cannot be served.

    Raised for local failures only: bad config, bad cursor, transport errors and
    unexpected response shapes. Vendor responses with a non-200 status are returned
    to the caller, not raised.
    """

    def __init__(self, message: str, code: ErrorCode = ErrorCode.INTERNAL, retryable: bool = False):
        """Create a new AdapterError instance.

        Args:
        ----
            message (str): Human-readable error message.
            code (ErrorCode): The error code. Defaults to INTERNAL.
            retryable (bool): Whether repeating the same request may succeed, e.g. after
                a timeout.

        """
        self.message = message
        self.code = code
        self.retryable = retryable
        super().__init__(message)


class UpstreamStatusError(PullkitException):
    """Raised by the sync runner when a page ends with a non-2xx status it won't retry."""

    def __init__(self, status_code: int, retry_after: Optional[str] = None):
        """Create a new UpstreamStatusError instance.

        Args:
        ----
            status_code (int): HTTP status code returned by the datasource.
            retry_after (str, optional): The Retry-After header value, if any.

        """
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(f"Datasource responded with status code {status_code}")

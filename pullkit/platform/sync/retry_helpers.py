"""Retry helpers for full syncs.

Provides the retry conditions and wait strategy used when a page request fails:
vendor rate limits (429), vendor server errors (5xx) and local failures flagged
retryable by the adapter (timeouts, connection errors).
"""

from typing import Callable

from tenacity import retry_if_exception, wait_exponential

from pullkit.core.config import settings
from pullkit.core.exceptions import AdapterError, UpstreamStatusError
from pullkit.core.logging import ContextualLogger

MIN_RETRY_AFTER_SECONDS = 1.0


def should_retry_on_rate_limit(exception: BaseException) -> bool:
    """Check if exception is a vendor rate limit (429)."""
    return isinstance(exception, UpstreamStatusError) and exception.status_code == 429


def should_retry_on_server_error(exception: BaseException) -> bool:
    """Check if exception is a vendor server error (5xx)."""
    return isinstance(exception, UpstreamStatusError) and exception.status_code >= 500


def should_retry_on_adapter_error(exception: BaseException) -> bool:
    """Check if exception is a local failure that may succeed when repeated.

    Args:
        exception: Exception to check

    Returns:
        True for AdapterErrors flagged retryable, e.g. timeouts
    """
    return isinstance(exception, AdapterError) and exception.retryable


def should_retry_page(exception: BaseException) -> bool:
    """Combined retry condition for page requests."""
    return (
        should_retry_on_rate_limit(exception)
        or should_retry_on_server_error(exception)
        or should_retry_on_adapter_error(exception)
    )


def wait_rate_limit_with_backoff(retry_state) -> float:
    """Wait strategy that respects Retry-After, with exponential backoff otherwise.

    A Retry-After value in seconds is honoured with a minimum of one second and capped
    by SYNC_MAX_RETRY_WAIT_SECONDS. Without a usable value: 2s, 4s, 8s, ... up to 30s
    for rate limits and up to 10s for other failures.

    Args:
        retry_state: tenacity retry state

    Returns:
        Number of seconds to wait before retry
    """
    exception = retry_state.outcome.exception()
    cap = settings.SYNC_MAX_RETRY_WAIT_SECONDS

    if isinstance(exception, UpstreamStatusError):
        if exception.retry_after:
            try:
                wait_seconds = float(exception.retry_after)
            except ValueError:
                wait_seconds = None
            if wait_seconds is not None:
                return min(max(wait_seconds, MIN_RETRY_AFTER_SECONDS), cap)

        if exception.status_code == 429:
            return min(wait_exponential(multiplier=1, min=2, max=30)(retry_state), cap)

    return min(wait_exponential(multiplier=1, min=2, max=10)(retry_state), cap)


retry_if_page_failed = retry_if_exception(should_retry_page)


def log_retry_attempt(
    logger: ContextualLogger, max_attempts: int, service_name: str = "Datasource"
) -> Callable[..., None]:
    """Create a before_sleep callback that logs retry attempts.

    Args:
        logger: Logger instance to use
        max_attempts: Attempts allowed per page, shown in the message
        service_name: Name of the service being called (for log messages)

    Returns:
        Callable that can be used as before_sleep in tenacity
    """

    def before_sleep(retry_state) -> None:
        exception = retry_state.outcome.exception()
        attempt = retry_state.attempt_number
        wait_time = retry_state.next_action.sleep if retry_state.next_action else 0

        if isinstance(exception, UpstreamStatusError):
            error_desc = f"HTTP {exception.status_code}"
        elif isinstance(exception, AdapterError):
            error_desc = f"{exception.code.value}: {exception.message}"
        else:
            error_desc = f"{type(exception).__name__}: {exception}"

        logger.warning(
            f"{service_name} page request failed ({error_desc}), "
            f"retrying in {wait_time:.1f}s (attempt {attempt}/{max_attempts})"
        )

    return before_sleep

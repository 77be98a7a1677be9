"""
Retry Policy
============
Exponential backoff for transient provider failures.
"""

import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from rana.core.errors import ProviderHTTPError, ProviderNetworkError, RateLimitError

logger = structlog.get_logger()


def is_retryable(exc: BaseException) -> bool:
    """Network failures, rate limits and 5xx answers are worth another try."""
    if isinstance(exc, (ProviderNetworkError, RateLimitError)):
        return True
    if isinstance(exc, ProviderHTTPError):
        return (exc.status_code or 0) >= 500
    return False


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    logger.warning(
        "Retrying provider call",
        attempt=state.attempt_number,
        error=str(exc) if exc else None,
    )


def with_retry(max_attempts: int = 3, min_wait: float = 1, max_wait: float = 10):
    """Decorate an async callable with the provider retry policy."""
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry,
        reraise=True,
    )

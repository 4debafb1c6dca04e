"""
Retry utilities for handling transient failures.

This module provides the full-jitter exponential backoff used around the STS
web identity exchange, plus the retry policy for the runner's ID token
endpoint. Both are built on the tenacity library.
"""

from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random_exponential,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

#: Total attempts made for the exchange, including the first one
DEFAULT_MAX_ATTEMPTS = 12

#: Base delay in milliseconds; the n-th retry sleeps up to 2**n times this
DEFAULT_BASE_DELAY_MS = 50


def should_retry_http_error(exception: BaseException) -> bool:
    """
    Determine if HTTP error should be retried.

    Retry on:
    - 429 (Rate Limit)
    - 500, 502, 503, 504 (Server Errors)

    Do not retry on:
    - 400, 401, 403, 404 (Client Errors)

    Args:
        exception: The exception to check

    Returns:
        True if the error should be retried, False otherwise
    """
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code in [429, 500, 502, 503, 504]
    return False


def log_retry_attempt(retry_state: RetryCallState) -> None:
    """
    Log retry attempts for debugging.

    Args:
        retry_state: The retry state from tenacity
    """
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Retrying after failure",
        attempt=retry_state.attempt_number,
        sleep_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
        exception=str(exception) if exception else None,
        exception_type=type(exception).__name__ if exception else None,
    )


def full_jitter_wait(base_delay_ms: float = DEFAULT_BASE_DELAY_MS) -> wait_random_exponential:
    """Build a wait strategy drawing uniformly from [0, 2**n * base_delay_ms).

    ``n`` is the zero-based retry index: the sleep after the first failed
    attempt is drawn from [0, base_delay_ms).
    """
    return wait_random_exponential(multiplier=base_delay_ms / 1000.0)


async def execute(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_ms: float = DEFAULT_BASE_DELAY_MS,
    sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
) -> T:
    """Run an async operation with full-jitter exponential backoff.

    The operation is attempted at least once, even when ``max_attempts`` is 0
    or 1. After ``max_attempts`` total attempts the last exception is raised
    unmodified; no sleep follows the final attempt.

    Args:
        operation: No-argument coroutine function to attempt
        max_attempts: Total attempts, including the first
        base_delay_ms: Base of the exponential backoff in milliseconds
        sleep: Coroutine used to wait between attempts (defaults to asyncio sleep)

    Returns:
        The value returned by the first successful attempt
    """
    kwargs: dict[str, Any] = {}
    if sleep is not None:
        kwargs["sleep"] = sleep

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=full_jitter_wait(base_delay_ms),
        retry=retry_if_exception_type(Exception),
        before_sleep=log_retry_attempt,
        reraise=True,
        **kwargs,
    )
    return await retrying(operation)


#: ID token request retry: 3 attempts with 1-10s exponential backoff
ID_TOKEN_RETRY = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=(
        retry_if_exception_type((httpx.TransportError,))
        | retry_if_exception(should_retry_http_error)
    ),
    before_sleep=log_retry_attempt,
    reraise=True,
)

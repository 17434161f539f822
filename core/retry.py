"""
Retry with exponential backoff for the boundary -> provider hop.

Only transient upstream failures (502 Bad Gateway, 503 Service Unavailable,
504 Gateway Timeout) are retried. Everything else propagates on first
occurrence so client errors are never blindly repeated.

Usage:
    version = await with_retry(lambda: upstream.get_latest_version(owner, name))

    # 1s, 2s, 4s between attempts, at most 4 calls
    prediction = await with_retry(create, max_retries=3, initial_delay=1.0)
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .errors import TRANSIENT_STATUS_CODES

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient_error(error: BaseException) -> bool:
    """True for 502/503/504 failures from the upstream provider."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in TRANSIENT_STATUS_CODES
    status_code = getattr(error, "status_code", None)
    return isinstance(status_code, int) and status_code in TRANSIENT_STATUS_CODES


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        f"Transient upstream failure (attempt {retry_state.attempt_number}): {error}. "
        f"Retrying in {delay:.1f}s"
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run an async operation, retrying transient failures with backoff.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_retries: Retries after the first attempt (total calls = max_retries + 1)
        initial_delay: Seconds before the first retry; doubles each retry
        sleep: Awaitable sleep, replaceable in tests

    Returns:
        Whatever the operation returns on its first successful attempt

    Raises:
        The last error, unchanged, once retries are exhausted or on any
        non-transient error.
    """
    # Iterate attempts so plain callables returning a coroutine are awaited too
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=initial_delay, exp_base=2, min=0),
        retry=retry_if_exception(is_transient_error),
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=True,
    ):
        with attempt:
            return await operation()

"""Retry policy for completion calls: exponential backoff, retry on tagged result."""

import asyncio
from typing import Awaitable, Callable

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from .base import AttemptResult

logger = structlog.stdlib.get_logger(__name__)


def _log_before_sleep(label: str):
    def _before_sleep(retry_state: RetryCallState) -> None:
        result = retry_state.outcome.result() if retry_state.outcome else None
        logger.warning(
            "llm.backoff",
            label=label,
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep if retry_state.next_action else None,
            reason=getattr(result, "reason", ""),
        )

    return _before_sleep


def _last_result(retry_state: RetryCallState) -> AttemptResult:
    return retry_state.outcome.result()


def completion_retrying(
    label: str,
    max_attempts: int = 3,
    initial_wait: float = 1.0,
    max_wait: float = 4.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> AsyncRetrying:
    """Build the retry controller for one completion call.

    Waits double from ``initial_wait`` (1s, 2s, 4s ...) capped at ``max_wait``.
    Only RETRYABLE attempt results are retried; OK and FATAL results return
    immediately. After the last attempt the final result is returned rather
    than raising.

    Args:
        label: Call-site label used in log events
        max_attempts: Total attempts including the first
        initial_wait: Delay after the first failed attempt (seconds)
        max_wait: Upper bound for any single delay (seconds)
        sleep: Awaitable sleep, injectable for tests
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=initial_wait, min=initial_wait, max=max_wait),
        retry=retry_if_result(lambda r: r.is_retryable),
        before_sleep=_log_before_sleep(label),
        retry_error_callback=_last_result,
        sleep=sleep,
    )

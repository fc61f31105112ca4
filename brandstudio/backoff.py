"""
backoff.py — Retry wrapper shared by every generation call.

Retries network failures, 429 and 5xx with pure exponential backoff
(base, 2×base, 4×base … no jitter). Other 4xx and errors that opt out
via ``retryable = False`` are raised on the first failure. Once the
attempt budget is spent the last error is raised unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .config import DEFAULT_BASE_DELAY_MS, DEFAULT_MAX_ATTEMPTS

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def status_of(error: BaseException) -> Optional[int]:
    """HTTP status carried by an error, if any."""
    status = getattr(error, "status_code", None)
    if status is None:
        # raw google-genai APIError
        status = getattr(error, "code", None)
    return status if isinstance(status, int) else None


def is_retryable(error: BaseException) -> bool:
    if not isinstance(error, Exception):
        return False
    if not getattr(error, "retryable", True):
        return False
    status = status_of(error)
    if status is None:
        return True
    return not (400 <= status < 500 and status != 429)


async def execute(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """
    Run ``operation`` until it succeeds or the attempt budget is spent.

    Args:
        operation:     Zero-argument coroutine function, called once per attempt
        max_attempts:  Total calls allowed, including the first
        base_delay_ms: Delay before the second attempt; doubles after that
        sleep:         Awaitable sleep taking seconds (swapped out in tests)

    Returns:
        Whatever ``operation`` returns on its first successful attempt.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay_ms / 1000.0, exp_base=2),
        retry=retry_if_exception(is_retryable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        sleep=sleep,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            result = await operation()
    return result


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget handed to every component that calls the service."""
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    sleep: Sleep = asyncio.sleep

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await execute(
            operation,
            max_attempts=self.max_attempts,
            base_delay_ms=self.base_delay_ms,
            sleep=self.sleep,
        )

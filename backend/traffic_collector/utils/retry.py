"""
Retry Strategy
==============

Runs an async operation and retries it with exponential backoff.

    strategy = RetryStrategy(max_attempts=3, base_delay=1.0)
    data = await strategy.execute(lambda: client.get(url), "fetching report")

Delay before retry n is base_delay * 2^(n-1), capped at max_delay:
    attempt 1 fails -> wait 1s
    attempt 2 fails -> wait 2s
    attempt 3 fails -> give up, re-raise the last error
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable_error(error: BaseException) -> bool:
    """
    Default retry predicate.

    Everything is retried unless the error says otherwise through a
    `retryable` attribute (TelraamApiError does this for 4xx responses).
    """
    return getattr(error, "retryable", True) is not False


class RetryStrategy:
    """Retry-with-backoff executor for async operations."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        should_retry: Optional[Callable[[BaseException], bool]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            max_attempts: Total tries including the first one
            base_delay: Delay before the first retry (seconds)
            max_delay: Upper bound for any single delay (seconds)
            should_retry: Decides if an error is worth retrying
            sleep: Awaitable sleep function (swap it out in tests)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.should_retry = should_retry or is_retryable_error
        self._sleep = sleep

    def get_delay(self, attempt: int) -> float:
        """Delay after the given (1-based) failed attempt."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        description: str = "operation",
    ) -> T:
        """
        Run `operation` until it succeeds or we run out of attempts.

        The last error is re-raised unchanged so callers still see the
        original exception type.
        """
        attempt = 1
        while True:
            try:
                return await operation()
            except Exception as e:
                if attempt >= self.max_attempts or not self.should_retry(e):
                    if attempt > 1:
                        logger.error(f"{description} failed after {attempt} attempt(s): {e}")
                    raise

                delay = self.get_delay(attempt)
                logger.warning(
                    f"{description} failed (attempt {attempt}/{self.max_attempts}): {e}. "
                    f"Retrying in {delay:.1f}s..."
                )
                await self._sleep(delay)
                attempt += 1

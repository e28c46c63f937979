"""
Retry Manager for the domain watch system.

This module provides bounded retry logic with backoff. The registration
prober uses it for its single retry after an HTTP 429: the retry budget
and the wait time come from RetryConfig, so the number of attempts is
always known up front and a lookup can never loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from .config import RetryConfig

T = TypeVar("T")


@dataclass
class RetryResult(Generic[T]):
    """Result of a retry operation."""

    result: T
    attempts: int
    total_delay_seconds: float = 0.0


class RetryManager:
    """
    Re-runs an operation while its result asks for a retry.

    The operation itself is expected to resolve failures into a value;
    the manager only decides, from that value, whether to try again.
    """

    def __init__(self, config: RetryConfig) -> None:
        """
        Initialize the retry manager.

        Args:
            config: Retry configuration with max_retries and delays
        """
        self._config = config

    @property
    def config(self) -> RetryConfig:
        return self._config

    def _calculate_delay(self, attempt: int) -> float:
        """
        Wait time before retry number ``attempt + 1``.

        delay(n) = base_delay * 2^n, capped at max_delay. With the default
        single retry this is simply the base delay.

        Args:
            attempt: The current attempt number (0-indexed)

        Returns:
            The delay in seconds before the next retry
        """
        delay = self._config.base_delay_seconds * (2 ** attempt)
        return min(delay, self._config.max_delay_seconds)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        should_retry: Callable[[T], bool],
    ) -> RetryResult[T]:
        """
        Execute an operation, retrying while ``should_retry`` holds.

        Args:
            operation: The async operation to execute
            should_retry: Predicate over the operation's result

        Returns:
            RetryResult with the last result and the number of attempts
        """
        max_attempts = self._config.max_retries + 1
        attempts = 0
        total_delay = 0.0
        result: Optional[T] = None

        while attempts < max_attempts:
            result = await operation()
            attempts += 1

            if not should_retry(result) or attempts >= max_attempts:
                break

            delay = self._calculate_delay(attempts - 1)
            total_delay += delay
            await asyncio.sleep(delay)

        return RetryResult(result=result, attempts=attempts, total_delay_seconds=total_delay)

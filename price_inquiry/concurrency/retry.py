"""
Bounded retry with exponential backoff and a per-attempt deadline.

Backoff between failed attempts is `retry_delay * 2 ** (attempt - 1)` with no
jitter and no cap; no wait follows the final attempt. The last error is
re-raised once attempts are exhausted. An attempt that misses its deadline
is cancelled through asyncio.wait_for, not left running in the background
with its eventual result discarded.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from price_inquiry.exceptions import UpstreamUnavailableError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _log_retry(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    logger.info(
        "upstream_retry_scheduled",
        attempt=retry_state.attempt_number,
        wait_seconds=retry_state.next_action.sleep if retry_state.next_action else 0,
        error=str(outcome.exception()) if outcome else None,
    )


class RetryController:
    """Wraps one outbound operation with bounded attempts."""

    def __init__(
        self,
        retry_count: int = 2,
        retry_delay: float = 0.5,
        timeout: float | None = 8.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if retry_count < 1:
            raise ValueError("retry_count must be at least 1")
        self.retry_count = retry_count
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._sleep = sleep

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.retry_count),
            wait=wait_exponential(multiplier=self.retry_delay, exp_base=2, min=0),
            retry=retry_if_exception_type(Exception),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )

    async def _attempt(self, operation: Callable[[], Awaitable[T]]) -> T:
        if self.timeout is None:
            return await operation()
        try:
            return await asyncio.wait_for(operation(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamUnavailableError(
                f"Request timeout after {self.timeout:g}s"
            ) from e

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run `operation()` until it succeeds or attempts are exhausted."""
        async for attempt in self._retrying():
            with attempt:
                return await self._attempt(operation)
        raise AssertionError("unreachable: tenacity re-raises on exhaustion")

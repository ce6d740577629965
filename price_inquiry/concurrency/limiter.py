"""Caps the number of simultaneous outbound operations."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ConcurrencyLimiter:
    """
    Runs at most `max_concurrent` tasks at once; the rest wait FIFO.

    Waiters are kept in an explicit queue of futures. A finishing task hands
    its slot straight to the oldest waiter, so a caller arriving while others
    wait always queues behind them. A slot is released when the task
    finishes, whether it succeeded or raised.
    """

    def __init__(self, max_concurrent: int = 5):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self.active = 0
        self._waiters: deque[asyncio.Future] = deque()

    @property
    def queued(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def run(self, task: Callable[[], Awaitable[T]]) -> T:
        """Execute `task()` once a slot is free and return its result."""
        if self.active < self.max_concurrent and not self._waiters:
            self.active += 1
        else:
            await self._wait_for_slot()

        try:
            return await task()
        finally:
            self._release()

    async def _wait_for_slot(self) -> None:
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        logger.debug("limiter_queued", active=self.active, queued=self.queued)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # slot was handed over before the cancellation landed
                self._release()
            elif waiter in self._waiters:
                self._waiters.remove(waiter)
            raise

    def _release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # the slot moves to the waiter; active is unchanged
                waiter.set_result(None)
                return
        self.active -= 1

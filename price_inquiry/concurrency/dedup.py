"""
In-flight request deduplication.

Concurrent requests that share a fingerprint (url + serialized options) are
collapsed onto one pending task. Every caller attached to that task observes
the same result or the same exception. The registry entry is dropped as soon
as the task finishes, so the next request after completion starts fresh.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def fingerprint(url: str, options: dict[str, Any] | None = None) -> str:
    """Deterministic request key; option order does not matter."""
    return f"{url}_{json.dumps(options or {}, sort_keys=True, ensure_ascii=False)}"


class InFlightDeduplicator:
    """Registry of pending operations keyed by request fingerprint."""

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Task] = {}
        self.primary_executions = 0
        self.coalesced_followers = 0

    def __len__(self) -> int:
        return len(self._pending)

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    async def _run_and_release(
        self, key: str, factory: Callable[[], Awaitable[T]]
    ) -> T:
        try:
            return await factory()
        finally:
            self._pending.pop(key, None)

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Join the pending operation for `key`, or start one with `factory`."""
        task = self._pending.get(key)
        if task is not None:
            self.coalesced_followers += 1
            logger.debug("request_coalesced", key=key)
        else:
            task = asyncio.ensure_future(self._run_and_release(key, factory))
            self._pending[key] = task
            self.primary_executions += 1

        # shield: one impatient caller must not cancel the shared operation
        return await asyncio.shield(task)

    async def cancel_all(self) -> None:
        """Cancel every outstanding operation (used on shutdown)."""
        tasks = list(self._pending.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()

    def get_stats(self) -> dict[str, int]:
        return {
            "pending": len(self._pending),
            "primary_executions": self.primary_executions,
            "coalesced_followers": self.coalesced_followers,
        }

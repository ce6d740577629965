"""
Debounced batch coalescing of identical queries.

Queries for the same normalized identifier that arrive within the debounce
window share one future. When the timer fires the whole window is detached
and a fresh one begins; each detached key is resolved exactly once (or served
from the resolved-result cache) and the outcome completes the shared future,
which every waiter on that key observes.

Design:
  * The debounce timer is re-armed on every arrival, so a window closes
    `batch_delay` seconds after the last query in a burst.
  * Dispatch order across distinct keys within one window is unspecified.
  * Only successful results are cached; failures are delivered but not kept.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from price_inquiry.cache import BoundedTTLCache
from price_inquiry.models import QueryResult

logger = structlog.get_logger(__name__)

Resolver = Callable[[str], Awaitable[QueryResult]]


def normalize_identifier(identifier: str) -> str:
    """
    Canonical batch key for an identifier.

    US tickers keep an uppercase symbol after a lowercase `us` prefix
    (`USaapl` -> `usAAPL`); everything else, fund codes included, is
    lowercased.
    """
    trimmed = identifier.strip()
    if trimmed.lower().startswith("us"):
        return f"us{trimmed[2:].upper()}"
    return trimmed.lower()


class BatchCoalescer:
    """Collects queries per normalized identifier and resolves each key once."""

    def __init__(
        self,
        resolver: Resolver,
        result_cache: BoundedTTLCache[QueryResult],
        batch_delay: float = 0.02,
        cache_ttl: float = 180.0,
    ):
        self._resolver = resolver
        self._result_cache = result_cache
        self.batch_delay = batch_delay
        self.cache_ttl = cache_ttl
        self._window: dict[str, asyncio.Future[QueryResult]] = {}
        self._timer: asyncio.TimerHandle | None = None
        self._dispatches: set[asyncio.Task] = set()
        self._closed = False
        self.windows_processed = 0
        self.resolutions = 0

    @staticmethod
    def cache_key(normalized: str) -> str:
        return f"batch_{normalized}"

    @property
    def pending_keys(self) -> list[str]:
        return list(self._window)

    async def add_query(self, identifier: str) -> QueryResult:
        """Join the current window for `identifier` and wait for its outcome."""
        if self._closed:
            raise RuntimeError("BatchCoalescer is closed")

        loop = asyncio.get_running_loop()
        key = normalize_identifier(identifier)
        future = self._window.get(key)
        if future is None:
            future = loop.create_future()
            self._window[key] = future

        self._schedule(loop)
        return await asyncio.shield(future)

    def _schedule(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self.batch_delay, self._flush)

    def _flush(self) -> None:
        """Detach the current window and dispatch one resolution per key."""
        window, self._window = self._window, {}
        self._timer = None
        if not window:
            return

        self.windows_processed += 1
        logger.debug("batch_window_flushed", keys=list(window))
        for key, future in window.items():
            task = asyncio.ensure_future(self._dispatch(key, future))
            self._dispatches.add(task)
            task.add_done_callback(self._dispatches.discard)

    async def _dispatch(self, key: str, future: asyncio.Future[QueryResult]) -> None:
        try:
            cache_key = self.cache_key(key)
            result = self._result_cache.get(cache_key, self.cache_ttl)
            if result is None:
                self.resolutions += 1
                result = await self._resolver(key)
                if result.ok:
                    self._result_cache.set(cache_key, result)
            else:
                logger.debug("batch_cache_hit", key=key)
        except asyncio.CancelledError:
            if not future.done():
                future.cancel()
            raise
        except Exception as e:
            logger.warning("batch_resolution_failed", key=key, error=str(e))
            if not future.done():
                future.set_exception(e)
            return

        if not future.done():
            future.set_result(result)

    async def close(self) -> None:
        """Stop accepting queries, cancel the timer and in-flight dispatches."""
        self._closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        for future in self._window.values():
            if not future.done():
                future.cancel()
        self._window = {}

        tasks = list(self._dispatches)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def get_stats(self) -> dict[str, int]:
        return {
            "pending_keys": len(self._window),
            "in_flight_dispatches": len(self._dispatches),
            "windows_processed": self.windows_processed,
            "resolutions": self.resolutions,
        }

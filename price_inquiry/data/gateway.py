"""
Single choke point for upstream traffic.

A request passes through, in order:
    raw response cache -> in-flight dedup -> concurrency limiter
    -> retry controller (per-attempt deadline) -> Fetcher

so that identical concurrent requests cost one upstream call, a retried
request holds one limiter slot across its attempts, and a successful body is
reused for the raw cache TTL.
"""

from __future__ import annotations

from typing import Any

import structlog

from price_inquiry.cache import BoundedTTLCache
from price_inquiry.concurrency import (
    ConcurrencyLimiter,
    InFlightDeduplicator,
    RetryController,
    fingerprint,
)
from price_inquiry.data.interfaces import Fetcher

logger = structlog.get_logger(__name__)


class UpstreamGateway:
    def __init__(
        self,
        fetcher: Fetcher,
        raw_cache: BoundedTTLCache[str],
        limiter: ConcurrencyLimiter,
        retry: RetryController,
        dedup: InFlightDeduplicator,
        cache_ttl: float = 45.0,
    ):
        self.fetcher = fetcher
        self.raw_cache = raw_cache
        self.limiter = limiter
        self.retry = retry
        self.dedup = dedup
        self.cache_ttl = cache_ttl
        self.upstream_calls = 0

    async def fetch_text(self, url: str, options: dict[str, Any] | None = None) -> str:
        """Body of `url`, from cache when fresh."""
        key = fingerprint(url, options)
        cached = self.raw_cache.get(key, self.cache_ttl)
        if cached is not None:
            logger.debug("raw_cache_hit", url=url)
            return cached

        return await self.dedup.run(key, lambda: self._fetch_and_store(key, url, options))

    async def _fetch_and_store(
        self, key: str, url: str, options: dict[str, Any] | None
    ) -> str:
        async def attempt() -> str:
            self.upstream_calls += 1
            return await self.fetcher.fetch(url, options)

        body = await self.limiter.run(lambda: self.retry.execute(attempt))
        self.raw_cache.set(key, body)
        return body

    def get_stats(self) -> dict[str, Any]:
        return {
            "upstream_calls": self.upstream_calls,
            "active_requests": self.limiter.active,
            "queued_requests": self.limiter.queued,
            "dedup": self.dedup.get_stats(),
            "raw_cache": self.raw_cache.get_stats(),
        }

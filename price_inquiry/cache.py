"""
Bounded in-memory cache with per-read TTL and recency-based eviction.

Entries live in an OrderedDict: every read or write moves the key to the tail,
so the head is always the least recently touched entry and is the one evicted
when a new key arrives at capacity.

TTL is passed per call rather than fixed at construction because the engine
shares this implementation between a short-lived raw response cache and a
long-lived resolved result cache.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    value: V
    touched_at: float
    access_count: int = 1


class BoundedTTLCache(Generic[V]):
    """Capacity-bounded key/value store with TTL checks on read."""

    def __init__(
        self,
        max_size: int = 1000,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.name = name
        self._clock = clock
        self._entries: OrderedDict[Hashable, CacheEntry[V]] = OrderedDict()
        self.hit_count = 0
        self.miss_count = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def set(self, key: Hashable, value: V) -> None:
        """Insert or refresh a key, evicting the least recently touched if full."""
        entry = self._entries.get(key)
        if entry is not None:
            entry.value = value
            entry.touched_at = self._clock()
            entry.access_count += 1
            self._entries.move_to_end(key)
            return

        if len(self._entries) >= self.max_size:
            evicted_key, _ = self._entries.popitem(last=False)
            logger.debug("cache_evicted", cache=self.name, key=str(evicted_key))

        self._entries[key] = CacheEntry(value=value, touched_at=self._clock())

    def get(self, key: Hashable, ttl: float) -> V | None:
        """
        Return the cached value if it is at most `ttl` seconds old.

        A hit refreshes the entry's timestamp and recency. A stale entry is
        removed and reported as a miss (None).
        """
        entry = self._entries.get(key)
        if entry is None:
            self.miss_count += 1
            return None

        now = self._clock()
        if now - entry.touched_at > ttl:
            del self._entries[key]
            self.miss_count += 1
            return None

        entry.access_count += 1
        entry.touched_at = now
        self._entries.move_to_end(key)
        self.hit_count += 1
        return entry.value

    def cleanup(self, ttl: float) -> int:
        """Remove every entry older than `ttl`. Returns the number removed."""
        now = self._clock()
        expired = [
            key
            for key, entry in self._entries.items()
            if now - entry.touched_at > ttl
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        self.hit_count = 0
        self.miss_count = 0

    def get_stats(self) -> dict[str, Any]:
        total = self.hit_count + self.miss_count
        hit_rate = f"{self.hit_count / total * 100:.2f}%" if total > 0 else "0%"
        return {
            "name": self.name,
            "size": len(self._entries),
            "max_size": self.max_size,
            "hit_rate": hit_rate,
            "hit_count": self.hit_count,
            "miss_count": self.miss_count,
        }

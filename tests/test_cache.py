"""
Unit tests for BoundedTTLCache.

Covers TTL boundaries on read, recency-based eviction at capacity, the
periodic cleanup sweep, and hit/miss statistics.
"""

import pytest

from price_inquiry.cache import BoundedTTLCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class TestTTL:
    """Reads honour the per-call TTL."""

    def test_hit_at_exact_ttl(self, clock):
        """An entry exactly `ttl` seconds old is still served."""
        cache = BoundedTTLCache(max_size=10, clock=clock)
        cache.set("k", "v")
        clock.advance(45)

        assert cache.get("k", ttl=45) == "v"

    def test_miss_past_ttl_removes_entry(self, clock):
        """A stale read returns None and drops the entry."""
        cache = BoundedTTLCache(max_size=10, clock=clock)
        cache.set("k", "v")
        clock.advance(45.001)

        assert cache.get("k", ttl=45) is None
        assert "k" not in cache
        assert len(cache) == 0

    def test_hit_refreshes_timestamp(self, clock):
        """A successful read restarts the entry's TTL."""
        cache = BoundedTTLCache(max_size=10, clock=clock)
        cache.set("k", "v")
        clock.advance(30)
        assert cache.get("k", ttl=45) == "v"
        clock.advance(30)

        assert cache.get("k", ttl=45) == "v"

    def test_same_entry_different_ttls(self, clock):
        """TTL is chosen by the reader, not stored with the value."""
        cache = BoundedTTLCache(max_size=10, clock=clock)
        cache.set("k", "v")
        clock.advance(100)

        assert cache.get("k", ttl=180) == "v"
        clock.advance(100)
        assert cache.get("k", ttl=45) is None


class TestEviction:
    """Capacity is never exceeded; the least recently touched entry goes first."""

    def test_evicts_oldest_insert(self, clock):
        """Inserting capacity+1 keys evicts exactly the first."""
        cache = BoundedTTLCache(max_size=3, clock=clock)
        for key in ("a", "b", "c", "d"):
            cache.set(key, key.upper())

        assert len(cache) == 3
        assert "a" not in cache
        assert all(k in cache for k in ("b", "c", "d"))

    def test_read_protects_key(self, clock):
        """A get between inserts moves the key away from the eviction end."""
        cache = BoundedTTLCache(max_size=3, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)
        cache.get("a", ttl=60)
        cache.set("d", 4)

        assert "a" in cache
        assert "b" not in cache

    def test_refresh_existing_key_does_not_evict(self, clock):
        """Re-setting a present key at capacity updates in place."""
        cache = BoundedTTLCache(max_size=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)

        assert len(cache) == 2
        assert cache.get("a", ttl=60) == 10
        assert cache.get("b", ttl=60) == 2

    def test_rejects_non_positive_capacity(self):
        """A cache must hold at least one entry."""
        with pytest.raises(ValueError):
            BoundedTTLCache(max_size=0)


class TestCleanupAndStats:
    """Sweeping and counters."""

    def test_cleanup_removes_only_expired(self, clock):
        """cleanup() drops stale entries and reports how many."""
        cache = BoundedTTLCache(max_size=10, clock=clock)
        cache.set("old1", 1)
        cache.set("old2", 2)
        clock.advance(50)
        cache.set("fresh", 3)

        removed = cache.cleanup(ttl=45)

        assert removed == 2
        assert list(cache._entries) == ["fresh"]

    def test_stats_track_hits_and_misses(self, clock):
        """Hit rate is reported as a percentage string."""
        cache = BoundedTTLCache(max_size=10, name="raw", clock=clock)
        cache.set("k", "v")
        cache.get("k", ttl=10)
        cache.get("k", ttl=10)
        cache.get("missing", ttl=10)

        stats = cache.get_stats()
        assert stats["name"] == "raw"
        assert stats["size"] == 1
        assert stats["hit_count"] == 2
        assert stats["miss_count"] == 1
        assert stats["hit_rate"] == "66.67%"

    def test_empty_stats(self):
        """No reads yet means a 0% hit rate, not a division error."""
        assert BoundedTTLCache().get_stats()["hit_rate"] == "0%"

    def test_clear_resets_everything(self, clock):
        """clear() empties the store and the counters."""
        cache = BoundedTTLCache(max_size=10, clock=clock)
        cache.set("k", "v")
        cache.get("k", ttl=10)
        cache.clear()

        assert len(cache) == 0
        assert cache.hit_count == 0
        assert cache.miss_count == 0

    def test_access_count_increments(self, clock):
        """Every read and write bumps the entry's access count."""
        cache = BoundedTTLCache(max_size=10, clock=clock)
        cache.set("k", "v")
        cache.get("k", ttl=10)
        cache.set("k", "w")

        assert cache._entries["k"].access_count == 3

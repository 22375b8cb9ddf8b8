"""Tests for the in-memory TTL cache."""

from __future__ import annotations

import re

import pytest

from retently_cli.cache import HOUR, MINUTE, TTLCache


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingFetch:
    """Awaitable factory returning successive values and counting calls."""

    def __init__(self, *values: object) -> None:
        self.values = list(values)
        self.calls = 0

    async def __call__(self) -> object:
        value = self.values[min(self.calls, len(self.values) - 1)]
        self.calls += 1
        return value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(clock=clock)


# ---------------------------------------------------------------------------
# get_or_fetch
# ---------------------------------------------------------------------------


class TestGetOrFetch:
    async def test_miss_then_hit(self, cache: TTLCache) -> None:
        fetch = CountingFetch({"nps": 42})
        first = await cache.get_or_fetch("nps_score", fetch, ttl=HOUR)
        second = await cache.get_or_fetch("nps_score", fetch, ttl=HOUR)

        assert first == second == {"nps": 42}
        assert fetch.calls == 1
        stats = cache.get_stats()
        assert (stats.hits, stats.misses, stats.size) == (1, 1, 1)

    async def test_expired_entry_is_refetched(self, cache: TTLCache, clock: FakeClock) -> None:
        fetch = CountingFetch("old", "new")
        assert await cache.get_or_fetch("customer:x", fetch, ttl=MINUTE) == "old"

        clock.advance(MINUTE - 1)
        assert await cache.get_or_fetch("customer:x", fetch, ttl=MINUTE) == "old"

        clock.advance(1)
        assert await cache.get_or_fetch("customer:x", fetch, ttl=MINUTE) == "new"
        assert fetch.calls == 2
        assert cache.get_stats().misses == 2

    async def test_distinct_keys_are_independent(self, cache: TTLCache) -> None:
        a = CountingFetch("a")
        b = CountingFetch("b")
        assert await cache.get_or_fetch("k1", a, ttl=HOUR) == "a"
        assert await cache.get_or_fetch("k2", b, ttl=HOUR) == "b"
        assert len(cache) == 2

    async def test_bypass_skips_read_and_write(self, cache: TTLCache) -> None:
        fetch = CountingFetch("v1", "v2", "v3")
        await cache.get_or_fetch("feedback", fetch, ttl=HOUR)

        value = await cache.get_or_fetch("feedback", fetch, ttl=HOUR, bypass_cache=True)
        assert value == "v2"
        assert fetch.calls == 2
        # The stored entry is untouched by the bypassed call.
        assert await cache.get_or_fetch("feedback", fetch, ttl=HOUR) == "v1"
        stats = cache.get_stats()
        assert (stats.hits, stats.misses) == (1, 1)

    async def test_failed_fetch_is_not_cached(self, cache: TTLCache) -> None:
        calls = 0

        async def flaky() -> str:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("boom")
            return "ok"

        with pytest.raises(RuntimeError, match="boom"):
            await cache.get_or_fetch("k", flaky, ttl=HOUR)
        assert "k" not in cache
        assert await cache.get_or_fetch("k", flaky, ttl=HOUR) == "ok"

    async def test_none_value_is_cached(self, cache: TTLCache) -> None:
        fetch = CountingFetch(None)
        assert await cache.get_or_fetch("empty", fetch, ttl=HOUR) is None
        assert await cache.get_or_fetch("empty", fetch, ttl=HOUR) is None
        assert fetch.calls == 1


# ---------------------------------------------------------------------------
# Enable / disable
# ---------------------------------------------------------------------------


class TestEnableDisable:
    async def test_disabled_cache_always_fetches(self) -> None:
        cache = TTLCache(enabled=False)
        fetch = CountingFetch("x")
        await cache.get_or_fetch("k", fetch, ttl=HOUR)
        await cache.get_or_fetch("k", fetch, ttl=HOUR)

        assert fetch.calls == 2
        assert len(cache) == 0
        stats = cache.get_stats()
        assert stats.enabled is False
        assert (stats.hits, stats.misses) == (0, 0)

    async def test_disable_keeps_entries_and_enable_serves_them(self, cache: TTLCache) -> None:
        fetch = CountingFetch("first", "second")
        await cache.get_or_fetch("k", fetch, ttl=HOUR)

        cache.disable()
        assert await cache.get_or_fetch("k", fetch, ttl=HOUR) == "second"
        assert len(cache) == 1

        cache.enable()
        assert await cache.get_or_fetch("k", fetch, ttl=HOUR) == "first"
        assert cache.enabled is True


# ---------------------------------------------------------------------------
# Invalidation
# ---------------------------------------------------------------------------


class TestInvalidation:
    async def _fill(self, cache: TTLCache, *keys: str) -> None:
        for key in keys:
            await cache.get_or_fetch(key, CountingFetch(key), ttl=HOUR)

    async def test_invalidate_single_key(self, cache: TTLCache) -> None:
        await self._fill(cache, "customer:a", "customers")
        assert cache.invalidate("customer:a") is True
        assert cache.invalidate("customer:a") is False
        assert "customers" in cache

    async def test_invalidate_pattern_anchored(self, cache: TTLCache) -> None:
        await self._fill(
            cache,
            "customers",
            'customers:{"page":2}',
            'customer:{"id":"c1"}',
            'feedback:{"campaign_id":"customer"}',
            "nps_score",
        )
        removed = cache.invalidate_pattern("^customer")
        assert removed == 3
        assert len(cache) == 2
        assert 'feedback:{"campaign_id":"customer"}' in cache

    async def test_invalidate_pattern_accepts_compiled_regex(self, cache: TTLCache) -> None:
        await self._fill(cache, "nps_score", "csat_score", "ces_score")
        assert cache.invalidate_pattern(re.compile(r"_score$")) == 3
        assert len(cache) == 0

    async def test_invalidate_pattern_no_match(self, cache: TTLCache) -> None:
        await self._fill(cache, "campaigns")
        assert cache.invalidate_pattern("^companies") == 0
        assert len(cache) == 1

    async def test_clear_returns_count_and_keeps_counters(self, cache: TTLCache) -> None:
        await self._fill(cache, "a", "b")
        assert cache.clear() == 2
        stats = cache.get_stats()
        assert stats.size == 0
        assert stats.misses == 2

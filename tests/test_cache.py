"""Tests for the TTL cache."""

import asyncio

import pytest

from memboard.adapters.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestTTLCache:
    def test_positive_ttl(self):
        clock = FakeClock()
        cache = TTLCache(positive_ttl=10, negative_ttl=5, clock=clock)
        cache.set("alice.eth", "0xabc")

        clock.now += 9
        assert cache.get("alice.eth") == "0xabc"
        clock.now += 2
        assert cache.get("alice.eth") is None
        assert "alice.eth" not in cache
        assert len(cache) == 0

    def test_negative_ttl(self):
        clock = FakeClock()
        cache = TTLCache(positive_ttl=10, negative_ttl=5, clock=clock)
        cache.set("nobody.eth", None)

        assert "nobody.eth" in cache
        clock.now += 6
        assert "nobody.eth" not in cache

    def test_keys_are_normalized(self):
        cache = TTLCache()
        cache.set("  Alice.ETH ", "0xabc")
        assert cache.get("alice.eth") == "0xabc"

    def test_default(self):
        assert TTLCache().get("missing", "fallback") == "fallback"

    @pytest.mark.asyncio
    async def test_get_or_fetch_caches(self):
        cache = TTLCache()
        calls = []

        async def fetcher():
            calls.append(1)
            return "0xabc"

        assert await cache.get_or_fetch("alice.eth", fetcher) == "0xabc"
        assert await cache.get_or_fetch("alice.eth", fetcher) == "0xabc"
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_concurrent_fetches_are_deduplicated(self):
        cache = TTLCache()
        calls = []
        release = asyncio.Event()

        async def fetcher():
            calls.append(1)
            await release.wait()
            return "0xabc"

        first = asyncio.ensure_future(cache.get_or_fetch("alice.eth", fetcher))
        await asyncio.sleep(0)
        assert cache.has_pending("alice.eth")
        second = asyncio.ensure_future(cache.get_or_fetch("ALICE.eth", fetcher))
        await asyncio.sleep(0)
        release.set()

        assert await asyncio.gather(first, second) == ["0xabc", "0xabc"]
        assert calls == [1]
        assert not cache.has_pending("alice.eth")

    @pytest.mark.asyncio
    async def test_await_pending_without_fetch(self):
        assert await TTLCache().await_pending("alice.eth") is None

    @pytest.mark.asyncio
    async def test_none_results_are_cached(self):
        cache = TTLCache()
        calls = []

        async def fetcher():
            calls.append(1)
            return None

        await cache.get_or_fetch("nobody.eth", fetcher)
        await cache.get_or_fetch("nobody.eth", fetcher)
        assert calls == [1]

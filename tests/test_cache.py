"""
Profile cache tests: sliding TTL, LRU capacity and shared in-flight fetches.
"""

import asyncio
import gc

import pytest

from core.cache import ProfileCache


class TestProfileCache:
    def test_entry_expires_after_ttl(self, cache, clock):
        cache.set("mojang-notch", {"id": "abc"})
        clock.now = 301
        assert cache.get("mojang-notch") is None
        assert "mojang-notch" not in cache

    def test_access_refreshes_ttl(self, cache, clock):
        cache.set("k", "v")
        clock.now = 200
        assert cache.get("k") == "v"
        clock.now = 450          # 250s after last access
        assert cache.get("k") == "v"
        clock.now = 751          # 301s after last access
        assert cache.get("k") is None

    def test_capacity_evicts_least_recently_used(self, clock):
        cache = ProfileCache(maxsize=2, ttl=300, timer=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.get("a") == 1
        cache.set("c", 3)

        assert "b" not in cache
        assert cache.get("a") == 1
        assert cache.get("c") == 3

    def test_never_exceeds_maxsize(self, clock):
        cache = ProfileCache(maxsize=5, ttl=300, timer=clock)
        for i in range(20):
            cache.set(f"k{i}", i)
        assert len(cache) == 5
        assert sorted(cache.keys()) == [f"k{i}" for i in range(15, 20)]

    def test_stats_track_hits_and_misses(self, cache):
        cache.set("k", "v")
        cache.get("k")
        cache.get("missing")
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["sets"] == 1
        assert stats["hit_rate"] == "50.00%"
        assert stats["size"] == 1

        cache.reset_stats()
        assert cache.stats()["hits"] == 0

    def test_delete_and_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.delete("a") is True
        assert cache.delete("a") is False
        cache.clear()
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_fetch(self, cache):
        calls = 0

        async def factory():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return {"id": "abc"}

        results = await asyncio.gather(*(cache.get_or_fetch("k", factory) for _ in range(5)))

        assert calls == 1
        assert all(r == {"id": "abc"} for r in results)
        assert cache.get("k") == {"id": "abc"}
        assert cache.stats()["inflight"] == 0

    @pytest.mark.asyncio
    async def test_none_results_are_not_cached(self, cache):
        calls = 0

        async def factory():
            nonlocal calls
            calls += 1
            return None

        assert await cache.get_or_fetch("k", factory) is None
        assert await cache.get_or_fetch("k", factory) is None
        assert calls == 2

    @pytest.mark.asyncio
    async def test_failed_fetch_propagates_and_stores_nothing(self, cache):
        async def factory():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await cache.get_or_fetch("k", factory)
        assert "k" not in cache

    @pytest.mark.asyncio
    async def test_failure_with_every_waiter_cancelled_is_not_left_unhandled(self, cache):
        loop = asyncio.get_running_loop()
        unhandled = []
        previous = loop.get_exception_handler()
        loop.set_exception_handler(lambda _loop, context: unhandled.append(context))
        release = asyncio.Event()

        async def factory():
            await release.wait()
            raise RuntimeError("boom")

        try:
            waiter = asyncio.ensure_future(cache.get_or_fetch("k", factory))
            await asyncio.sleep(0)
            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter

            release.set()
            for _ in range(5):
                await asyncio.sleep(0)
            assert cache.stats()["inflight"] == 0

            del waiter
            gc.collect()
        finally:
            loop.set_exception_handler(previous)

        assert unhandled == []
        assert "k" not in cache

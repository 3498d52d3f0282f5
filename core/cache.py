# core/cache.py
import asyncio, logging, time
from typing import Any, Awaitable, Callable, Hashable

from cachetools import TTLCache

log = logging.getLogger("capebot.cache")

_MISSING = object()

class ProfileCache:
    """
    Size-bounded LRU cache with a sliding time-to-live.

    Reading a live entry re-inserts it, so its expiry clock restarts and it
    becomes the most recently used key. Concurrent misses for the same key
    share one in-flight fetch via get_or_fetch().
    """

    def __init__(self, maxsize: int = 500, ttl: float = 300.0,
                 timer: Callable[[], float] = time.monotonic):
        self.maxsize = maxsize
        self.ttl = ttl
        self._data: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._inflight: dict[Hashable, asyncio.Task] = {}
        self._stats = {"hits": 0, "misses": 0, "sets": 0}

    # ---------- mapping-ish API ----------
    def get(self, key: Hashable, default: Any = None) -> Any:
        value = self._data.get(key, _MISSING)
        if value is _MISSING:
            self._stats["misses"] += 1
            return default
        self._stats["hits"] += 1
        self._data[key] = value  # restart TTL
        return value

    def set(self, key: Hashable, value: Any) -> None:
        self._data[key] = value
        self._stats["sets"] += 1

    def delete(self, key: Hashable) -> bool:
        return self._data.pop(key, _MISSING) is not _MISSING

    def clear(self) -> None:
        size = len(self)
        self._data.clear()
        if size:
            log.info("Cache flushed: %d items removed", size)

    def keys(self) -> list:
        self._data.expire()
        return list(self._data.keys())

    def __contains__(self, key: Hashable) -> bool:
        return key in self._data

    def __len__(self) -> int:
        self._data.expire()
        return len(self._data)

    # ---------- async fill ----------
    async def get_or_fetch(self, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value for key, or await factory() once for all concurrent callers.

        None results are handed back to the callers but never stored.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fill(key, factory))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._settle(k, t))
        return await asyncio.shield(task)

    def _settle(self, key: Hashable, task: asyncio.Task) -> None:
        self._inflight.pop(key, None)
        # mark the failure retrieved; every waiter may have been cancelled already
        if not task.cancelled() and task.exception() is not None:
            log.debug("Fetch for %r failed: %r", key, task.exception())

    async def _fill(self, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> Any:
        value = await factory()
        if value is not None:
            self.set(key, value)
        return value

    # ---------- stats ----------
    def stats(self) -> dict:
        hits, misses = self._stats["hits"], self._stats["misses"]
        total = hits + misses
        hit_rate = (hits / total * 100) if total else 0.0
        return {
            **self._stats,
            "hit_rate": f"{hit_rate:.2f}%",
            "size": len(self),
            "maxsize": self.maxsize,
            "ttl": self.ttl,
            "inflight": len(self._inflight),
        }

    def reset_stats(self) -> None:
        self._stats = {"hits": 0, "misses": 0, "sets": 0}

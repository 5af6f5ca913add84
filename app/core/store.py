"""Key-value stores with per-key expiry.

Lookup caching and rate limiting keep their state behind the
``KeyValueStore`` protocol so a shared backend can replace the
process-local default without touching call sites:

- ``MemoryStore``: in-process dict guarded by a lock (default, dev)
- ``RedisStore``: redis.asyncio client, shared across workers
"""

import math
import threading
import time
from collections.abc import Callable
from typing import Any, Protocol

from redis.asyncio import Redis

from app.core.config import Settings
from app.core.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], float]


class KeyValueStore(Protocol):
    """Operations required from a lookup state backend."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: float) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def increment(self, key: str, ttl_seconds: float) -> int: ...

    async def ttl(self, key: str) -> float | None: ...

    async def size(self, prefix: str = "") -> int: ...

    async def close(self) -> None: ...


class MemoryStore:
    """Process-local store with passive expiry.

    Expired entries are dropped when read or when the store needs room;
    there is no background sweep.
    """

    def __init__(self, max_entries: int = 10000, clock: Clock = time.monotonic):
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def _live(self, key: str, now: float) -> tuple[Any, float] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if now >= entry[1]:
            del self._entries[key]
            return None
        return entry

    def _make_room(self, now: float) -> None:
        if len(self._entries) < self.max_entries:
            return
        for key in [k for k, (_, exp) in self._entries.items() if now >= exp]:
            del self._entries[key]
        while len(self._entries) >= self.max_entries:
            # dicts keep insertion order, so this drops the oldest write
            del self._entries[next(iter(self._entries))]

    async def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._live(key, self._clock())
        return None if entry is None else str(entry[0])

    async def set(self, key: str, value: str, ttl_seconds: float) -> None:
        with self._lock:
            now = self._clock()
            self._entries.pop(key, None)
            self._make_room(now)
            self._entries[key] = (value, now + ttl_seconds)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    async def increment(self, key: str, ttl_seconds: float) -> int:
        """Increment a counter, starting a new window when absent or expired."""
        with self._lock:
            now = self._clock()
            entry = self._live(key, now)
            if entry is None:
                self._make_room(now)
                self._entries[key] = (1, now + ttl_seconds)
                return 1
            count = int(entry[0]) + 1
            self._entries[key] = (count, entry[1])
            return count

    async def ttl(self, key: str) -> float | None:
        with self._lock:
            now = self._clock()
            entry = self._live(key, now)
        return None if entry is None else entry[1] - now

    async def size(self, prefix: str = "") -> int:
        with self._lock:
            now = self._clock()
            return sum(
                1
                for key, (_, exp) in self._entries.items()
                if key.startswith(prefix) and now < exp
            )

    async def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    async def close(self) -> None:
        await self.clear()


class RedisStore:
    """Store backed by Redis; expiry is enforced by the server."""

    def __init__(self, client: "Redis[str]") -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        """Create a store from a Redis connection URL."""
        return cls(Redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> str | None:
        value = await self._client.get(key)
        return None if value is None else str(value)

    async def set(self, key: str, value: str, ttl_seconds: float) -> None:
        await self._client.set(key, value, ex=max(1, math.ceil(ttl_seconds)))

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def increment(self, key: str, ttl_seconds: float) -> int:
        """Atomically start or advance a fixed window counter.

        SET NX seeds the counter with the window expiry; INCR never touches
        the expiry, so the window ends at its original time.
        """
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.set(key, 0, ex=max(1, math.ceil(ttl_seconds)), nx=True)
            pipe.incr(key)
            results = await pipe.execute()
        return int(results[1])

    async def ttl(self, key: str) -> float | None:
        remaining = await self._client.ttl(key)
        if remaining is None or remaining < 0:
            return None
        return float(remaining)

    async def size(self, prefix: str = "") -> int:
        count = 0
        async for _ in self._client.scan_iter(match=f"{prefix}*"):
            count += 1
        return count

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()


def create_store(settings: Settings, clock: Clock = time.monotonic) -> KeyValueStore:
    """Build the store selected by ``CACHE_BACKEND``."""
    if settings.CACHE_BACKEND == "redis":
        logger.info("store_backend_selected", backend="redis")
        return RedisStore.from_url(settings.REDIS_URL)
    logger.info("store_backend_selected", backend="memory")
    return MemoryStore(max_entries=settings.GEO_CACHE_MAX_ENTRIES, clock=clock)

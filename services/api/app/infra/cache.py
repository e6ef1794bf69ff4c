"""Read-through cache for listings and statistics.

Readers call `get_or_set`; writers never store derived values, they only
`invalidate(prefix)` the semantic category they touched ("orders", "cart",
"reviews", "stats") so the next reader repopulates from the database.

Two backends share the interface:
- MemoryCache: process-local dict of key -> (value, expiry). Default.
- RedisCache: JSON values with SET EX, for deployments running several workers.
"""

import json
import logging
import threading
import time
from typing import Any, Callable, Optional, Protocol

from app.settings import settings

logger = logging.getLogger("kitchen.cache")


class Cache(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl_sec: int) -> None: ...

    def invalidate(self, prefix: str) -> int: ...

    def get_or_set(self, key: str, ttl_sec: int, compute: Callable[[], Any]) -> tuple[Any, bool]: ...


class _ReadThroughMixin:
    def get_or_set(self, key: str, ttl_sec: int, compute: Callable[[], Any]) -> tuple[Any, bool]:
        hit = self.get(key)
        if hit is not None:
            return hit, True
        val = compute()
        self.set(key, val, ttl_sec)
        return val, False


class MemoryCache(_ReadThroughMixin):
    """Process-local TTL cache. Expired entries are evicted lazily on read."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._store: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expiry = entry
            if self._clock() >= expiry:
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_sec: int) -> None:
        with self._lock:
            self._store[key] = (value, self._clock() + ttl_sec)

    def invalidate(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._store if k.startswith(prefix)]
            for k in doomed:
                del self._store[k]
        if doomed:
            logger.debug(f"Invalidated {len(doomed)} key(s) under '{prefix}'")
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


class RedisCache(_ReadThroughMixin):
    """Shared cache backed by Redis. Values must be JSON-serialisable."""

    def __init__(self, client, namespace: str = "kitchen:cache:"):
        self._r = client
        self._ns = namespace

    def _key(self, key: str) -> str:
        return f"{self._ns}{key}"

    def get(self, key: str) -> Optional[Any]:
        raw = self._r.get(self._key(key))
        return json.loads(raw) if raw else None

    def set(self, key: str, value: Any, ttl_sec: int) -> None:
        self._r.set(self._key(key), json.dumps(value), ex=ttl_sec)

    def invalidate(self, prefix: str) -> int:
        doomed = list(self._r.scan_iter(match=f"{self._ns}{prefix}*"))
        if doomed:
            self._r.delete(*doomed)
            logger.debug(f"Invalidated {len(doomed)} key(s) under '{prefix}'")
        return len(doomed)


def invalidate_all(cache: Cache, *prefixes: str) -> None:
    for prefix in prefixes:
        cache.invalidate(prefix)


_cache: Cache | None = None


def build_cache() -> Cache:
    if settings.cache_backend == "redis":
        from app.infra.redis_client import get_sync_redis
        logger.info("Using Redis cache backend")
        return RedisCache(get_sync_redis(), namespace=settings.cache_prefix)
    return MemoryCache()


def get_cache() -> Cache:
    """Process-wide cache, built on first use. FastAPI dependency."""
    global _cache
    if _cache is None:
        _cache = build_cache()
    return _cache


def reset_cache(cache: Cache | None = None) -> None:
    global _cache
    _cache = cache

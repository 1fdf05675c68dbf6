from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from loguru import logger


class CacheTTL:
    SHORT = 2 * 60
    MEDIUM = 5 * 60
    LONG = 15 * 60
    VERY_LONG = 60 * 60


@dataclass
class CacheItem:
    data: Any
    expires: float
    created: float


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    size: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def _params_segment(params: Dict[str, Any]) -> str:
    return "|".join(f"{k}:{params[k]}" for k in sorted(params))


def cache_key(prefix: str, *parts: Any, **params: Any) -> str:
    """
    Build a consistent cache key.

    The params segment is appended when params are given or when there are
    no parts, so a bare collection key keeps its trailing colon. Keys for
    parameterised collections with an id (agent listings) should go through
    their dedicated helper, which always appends the segment.

    cache_key("listing", "abc")                  -> "listing:abc"
    cache_key("agent", "a1", "listings", page=2) -> "agent:a1:listings:page:2"
    cache_key("listings", city="Lagos", beds=3)  -> "listings:beds:3|city:Lagos"
    cache_key("listings")                        -> "listings:"
    """
    segments = [prefix, *(str(p) for p in parts)]
    if params or not parts:
        segments.append(_params_segment(params))
    return ":".join(segments)


def listings_key(**params: Any) -> str:
    return cache_key("listings", **params)


def listing_key(listing_id: str) -> str:
    return cache_key("listing", listing_id)


def user_key(user_id: str) -> str:
    return cache_key("user", user_id)


def agent_key(agent_id: str) -> str:
    return cache_key("agent", agent_id)


def agent_listings_key(agent_id: str, **params: Any) -> str:
    # "agent:<id>:listings:" even without params
    return f"agent:{agent_id}:listings:{_params_segment(params)}"


def inspections_key(**params: Any) -> str:
    return cache_key("inspections", **params)


def user_notifications_key(user_id: str) -> str:
    return cache_key("notifications", user_id)


class ResponseCache:
    """In-memory TTL cache for API responses, bounded by entry count."""

    def __init__(
        self,
        default_ttl: float = CacheTTL.MEDIUM,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._clock = clock
        self._items: Dict[str, CacheItem] = {}
        self._stats = CacheStats()
        self._lock = threading.Lock()
        # bumped on every delete/clear, even of absent keys
        self._generation = 0

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                self._stats.misses += 1
                return None

            if self._clock() > item.expires:
                del self._items[key]
                self._stats.misses += 1
                self._stats.deletes += 1
                self._stats.size = len(self._items)
                return None

            self._stats.hits += 1
            return item.data

    def set(self, key: str, data: Any, ttl: Optional[float] = None) -> None:
        now = self._clock()
        expires = now + (ttl if ttl else self.default_ttl)

        with self._lock:
            if len(self._items) >= self.max_size and key not in self._items:
                self._evict_oldest()

            self._items[key] = CacheItem(data=data, expires=expires, created=now)
            self._stats.sets += 1
            self._stats.size = len(self._items)

    def delete(self, key: str) -> bool:
        with self._lock:
            self._generation += 1
            if self._items.pop(key, None) is None:
                return False
            self._stats.deletes += 1
            self._stats.size = len(self._items)
            return True

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._stats.deletes += len(self._items)
            self._items.clear()
            self._stats.size = 0

    def has(self, key: str) -> bool:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return False
            if self._clock() > item.expires:
                del self._items[key]
                self._stats.size = len(self._items)
                return False
            return True

    def _lookup(self, key: str) -> Tuple[Optional[Any], int]:
        with self._lock:
            generation = self._generation
        return self.get(key), generation

    def _store_unless_invalidated(self, key: str, data: Any, ttl: Optional[float], generation: int) -> None:
        with self._lock:
            stale = generation != self._generation
        if stale:
            logger.debug(f"Cache skipped store after concurrent invalidation | key={key}")
            return
        self.set(key, data, ttl)

    def get_or_set(self, key: str, compute: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        """
        Return the cached value or compute and store it. The computed value is
        not stored if a delete/clear ran while it was being computed, so a
        write that invalidated the key is never overwritten with older data.
        """
        cached, generation = self._lookup(key)
        if cached is not None:
            return cached

        data = compute()
        self._store_unless_invalidated(key, data, ttl, generation)
        return data

    async def aget_or_set(
        self,
        key: str,
        compute: Callable[[], Awaitable[Any]],
        ttl: Optional[float] = None,
    ) -> Any:
        cached, generation = self._lookup(key)
        if cached is not None:
            return cached

        data = await compute()
        self._store_unless_invalidated(key, data, ttl, generation)
        return data

    def _evict_oldest(self) -> None:
        # caller holds the lock
        if not self._items:
            return
        oldest_key = min(self._items, key=lambda k: self._items[k].created)
        del self._items[oldest_key]
        logger.debug(f"Cache evicted oldest entry | key={oldest_key}")

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, item in self._items.items() if now > item.expires]
            for k in expired:
                del self._items[k]
            self._stats.deletes += len(expired)
            self._stats.size = len(self._items)
        return len(expired)

    def invalidate(self, pattern: str) -> int:
        removed = 0
        for key in self.keys():
            if pattern in key and self.delete(key):
                removed += 1
        return removed

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(**asdict(self._stats))

    def hit_rate(self) -> float:
        with self._lock:
            total = self._stats.hits + self._stats.misses
            return 0.0 if total == 0 else self._stats.hits / total

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._items)

    def size(self) -> int:
        with self._lock:
            return len(self._items)


async def run_periodic_cleanup(cache: ResponseCache, interval_seconds: float) -> None:
    """Evict expired entries every interval until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        removed = cache.cleanup()
        if removed > 0:
            logger.info(f"Cache cleanup: removed {removed} expired items")

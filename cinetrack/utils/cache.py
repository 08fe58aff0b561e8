"""
In-process TTL cache for upstream list calls
============================================
Short-lived memoization for TMDB endpoints whose answers are shared by all
users (trending, popular, videos). Per-movie detail documents are NOT cached
here: they live in the ``movies`` table where freshness is tracked.

Usage:
    from cinetrack.utils.cache import cache, clear_all_cache

    @cache(ttl=300)
    def fetch_trending(window, page):
        ...
"""
from functools import wraps
from typing import Any, Callable, Optional, Tuple
from collections import OrderedDict
import hashlib
import json
import logging
import time

logger = logging.getLogger(__name__)

_MISSING = object()


class CacheStore:
    """
    TTL cache with LRU eviction.
    Cache is per-process (not shared across workers).
    """

    def __init__(self, max_size: int = 500):
        self._entries: "OrderedDict[str, Tuple[Any, Optional[float]]]" = OrderedDict()
        self._max_size = max_size
        self._hits = 0
        self._misses = 0

    @staticmethod
    def make_key(namespace: str, args: tuple, kwargs: dict) -> str:
        key_data = {"ns": namespace, "args": args, "kwargs": sorted(kwargs.items())}
        key_str = json.dumps(key_data, sort_keys=True, default=str)
        return hashlib.md5(key_str.encode()).hexdigest()

    def get(self, key: str) -> Any:
        """Return the cached value, or _MISSING if absent/expired"""
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return _MISSING

        value, expires_at = entry
        if expires_at is not None and time.monotonic() > expires_at:
            del self._entries[key]
            self._misses += 1
            return _MISSING

        self._entries.move_to_end(key)
        self._hits += 1
        return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = time.monotonic() + ttl if ttl else None
        self._entries[key] = (value, expires_at)
        self._entries.move_to_end(key)

        if len(self._entries) > self._max_size:
            oldest_key, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted cache key: {oldest_key}")

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def get_stats(self) -> dict:
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0

        return {
            "size": len(self._entries),
            "max_size": self._max_size,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": f"{hit_rate:.2f}%",
        }


# Global cache instance
_cache_store = CacheStore()


def cache(ttl: int = 300):
    """
    Decorator to memoize function results for ``ttl`` seconds.
    Exceptions are not cached.
    """
    def decorator(func: Callable) -> Callable:
        namespace = f"{func.__module__}.{func.__qualname__}"

        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = CacheStore.make_key(namespace, args, kwargs)

            cached_value = _cache_store.get(cache_key)
            if cached_value is not _MISSING:
                logger.debug(f"Cache hit for {func.__name__}")
                return cached_value

            logger.debug(f"Cache miss for {func.__name__}")
            result = func(*args, **kwargs)
            _cache_store.set(cache_key, result, ttl)
            return result

        return wrapper

    return decorator


def clear_all_cache() -> None:
    """Clear all cache entries."""
    _cache_store.clear()
    logger.info("In-process cache cleared")


def get_cache_stats() -> dict:
    return _cache_store.get_stats()

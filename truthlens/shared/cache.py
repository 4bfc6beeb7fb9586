"""In-process TTL cache for TruthLens repository reads.

Backed by cachetools.TTLCache; every process keeps its own copy. When the
database cannot be reached, reads fall back to the last value seen for the
key (even if its TTL has passed) so role checks keep working through short
outages.
"""

import asyncio
import functools
import logging
from collections import OrderedDict
from collections.abc import Callable
from typing import Any, TypeVar

from cachetools import TTLCache  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

# Distinguishes "no entry" from a cached None
_MISSING = object()

F = TypeVar("F", bound=Callable[..., Any])


class AsyncTTLCache:
    """TTL cache plus a bounded last-known-good store.

    ``invalidate`` only drops the fresh entry; the last-known-good value is
    kept for outage fallback until it is evicted by newer keys.
    """

    def __init__(self, maxsize: int = 128, ttl: float = 60.0):
        self._maxsize = maxsize
        self._fresh: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._last_good: OrderedDict[str, Any] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            if len(self._locks) >= self._maxsize * 2:
                # Drop locks nobody is holding
                self._locks = {k: v for k, v in self._locks.items() if v.locked()}
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def get(self, key: str) -> Any:
        return self._fresh.get(key, _MISSING)

    def set(self, key: str, value: Any) -> None:
        self._fresh[key] = value
        self._last_good[key] = value
        self._last_good.move_to_end(key)
        while len(self._last_good) > self._maxsize:
            self._last_good.popitem(last=False)

    def invalidate(self, key: str) -> None:
        self._fresh.pop(key, None)

    def clear(self) -> None:
        self._fresh.clear()
        self._last_good.clear()

    def get_last_good(self, key: str) -> Any:
        return self._last_good.get(key, _MISSING)


def cached(cache: AsyncTTLCache, key_func: Callable[..., str]):
    """Cache the result of an async repository read.

    *key_func* receives the decorated function's arguments and returns the
    cache key. If the read raises, the last-known-good value for the key is
    returned with a warning; without one the exception propagates.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            key = key_func(*args, **kwargs)

            result = cache.get(key)
            if result is not _MISSING:
                return result

            async with cache.lock_for(key):
                result = cache.get(key)
                if result is not _MISSING:
                    return result

                try:
                    result = await func(*args, **kwargs)
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    fallback = cache.get_last_good(key)
                    if fallback is _MISSING:
                        raise
                    logger.warning(f"Serving last known value for {key} ({type(exc).__name__})")
                    return fallback

                cache.set(key, result)
                return result

        wrapper.cache = cache  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    return decorator

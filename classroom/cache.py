"""TTL memo for identifiers resolved from external services."""
from __future__ import annotations

import time
from typing import Callable, Generic, Optional, TypeVar

from cachetools import TTLCache

T = TypeVar("T")


class ResolvedValueCache(Generic[T]):
    """Holds looked-up values until ``ttl`` seconds pass, then loads them again.

    The TTL is the refresh policy; ``force_refresh`` skips it for one call.
    """

    def __init__(self, ttl: float, maxsize: int = 16, timer: Callable[[], float] = time.monotonic) -> None:
        self._cache: TTLCache[str, T] = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    def get(self, key: str) -> Optional[T]:
        return self._cache.get(key)

    def set(self, key: str, value: T) -> None:
        self._cache[key] = value

    def invalidate(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()

    def get_or_load(self, key: str, loader: Callable[[], Optional[T]], force_refresh: bool = False) -> Optional[T]:
        """Return the cached value or store whatever ``loader`` produces.

        ``None`` from the loader is returned but not cached.
        """
        if not force_refresh:
            cached = self._cache.get(key)
            if cached is not None:
                return cached
        value = loader()
        if value is not None:
            self._cache[key] = value
        return value

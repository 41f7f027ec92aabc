"""
Simple in-memory query cache.

Entries never expire on their own; they live until a mutation invalidates
their key. Keys are tuples and invalidation matches by prefix, so
invalidating ``("products", venue_id)`` also drops
``("products", venue_id, ...)`` entries.
"""
from typing import Dict, Any, Optional, Callable, Tuple

CacheKey = Tuple[Any, ...]


class Cache:
    """Keyed cache without expiration."""

    def __init__(self):
        self._cache: Dict[CacheKey, Any] = {}

    def get(self, key: CacheKey) -> Optional[Any]:
        return self._cache.get(key)

    def set(self, key: CacheKey, value: Any) -> None:
        self._cache[key] = value

    def invalidate(self, prefix: CacheKey) -> int:
        """Drop every key starting with ``prefix``; returns how many were dropped."""
        size = len(prefix)
        stale = [key for key in self._cache if key[:size] == prefix]
        for key in stale:
            del self._cache[key]
        return len(stale)

    def clear(self) -> None:
        self._cache.clear()

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._cache

    def get_or_set(self, key: CacheKey, getter: Callable[[], Any]) -> Any:
        """Get value from cache or set it if not exists."""
        value = self.get(key)
        if value is None:
            value = getter()
            self.set(key, value)
        return value

"""Request cache keyed by (resourcePath, careRecipientId, *extra) tuples."""
import logging
from typing import Any, Callable, Dict, List, Tuple

CacheKey = Tuple[Any, ...]


def make_key(resource: str, care_recipient_id=None, *extra) -> CacheKey:
    """Build a cache key; ids are compared as strings."""
    key = [resource]
    if care_recipient_id is not None:
        key.append(str(care_recipient_id))
    key.extend(str(item) for item in extra)
    return tuple(key)


def key_matches(key: CacheKey, prefix: CacheKey) -> bool:
    return key[:len(prefix)] == tuple(prefix)


class QueryCache:
    """Holds fetched results until a mutation invalidates them.

    There is no expiry or eviction; an entry lives until `invalidate` removes it.
    Subscribers are called with the list of keys each invalidation removed.
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._entries: Dict[CacheKey, Any] = {}
        self._subscribers: List[Callable[[List[CacheKey]], None]] = []

    def fetch(self, key: CacheKey, loader: Callable[[], Any]):
        """Return the cached value for `key`, calling `loader` on a miss.

        Errors from `loader` propagate and nothing is cached.
        """
        key = tuple(key)
        if key in self._entries:
            return self._entries[key]
        self.logger.debug(f"Cache miss: {key}")
        value = loader()
        self._entries[key] = value
        return value

    def peek(self, key: CacheKey, default=None):
        return self._entries.get(tuple(key), default)

    def set(self, key: CacheKey, value):
        self._entries[tuple(key)] = value

    def contains(self, key: CacheKey) -> bool:
        return tuple(key) in self._entries

    def keys(self) -> List[CacheKey]:
        return list(self._entries)

    def invalidate(self, prefix: CacheKey) -> List[CacheKey]:
        """Drop every entry whose key starts with `prefix`."""
        removed = [key for key in self._entries if key_matches(key, prefix)]
        for key in removed:
            del self._entries[key]
        if removed:
            self.logger.debug(f"Invalidated {len(removed)} cache entries for {tuple(prefix)}")
            for callback in list(self._subscribers):
                callback(removed)
        return removed

    def clear(self):
        removed = list(self._entries)
        self._entries.clear()
        for callback in list(self._subscribers):
            callback(removed)

    def subscribe(self, callback):
        """Register `callback(removed_keys)`; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

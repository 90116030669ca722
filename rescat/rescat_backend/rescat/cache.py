"""
In-process TTL cache with tag-based invalidation
"""
from __future__ import annotations
import time
from threading import Lock
from typing import Any, Dict, Iterable, Optional


class TaggedCache:
    """Thread-safe in-memory cache; entries expire after a TTL or when one of their tags is invalidated"""

    def __init__(self, default_ttl: int = 3600):
        self._entries: Dict[str, tuple[Any, float, frozenset[str]]] = {}
        self._lock = Lock()
        self.default_ttl = default_ttl

    def get(self, key: str) -> Optional[Any]:
        """Value for `key` if present and not expired"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expiry, _ = entry
            if time.time() < expiry:
                return value
            del self._entries[key]
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None, tags: Iterable[str] = ()):
        ttl = ttl or self.default_ttl
        with self._lock:
            self._entries[key] = (value, time.time() + ttl, frozenset(tags))

    def invalidate_tag(self, tag: str) -> int:
        """Drop every entry carrying `tag`; returns how many were dropped"""
        with self._lock:
            doomed = [k for k, (_, _, tags) in self._entries.items() if tag in tags]
            for k in doomed:
                del self._entries[k]
            return len(doomed)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Shared by the API process
resource_cache = TaggedCache()

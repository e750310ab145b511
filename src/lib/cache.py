"""
In-memory LRU/TTL cache for compiled pipelines and templates

Implements the get/set capability the compiler and filter pipeline accept.
Concurrent renders may race on a miss; both compute the same value and the
second write simply overwrites the first.
"""

import threading
import time
from collections import OrderedDict
from typing import Any, Generic, Hashable, Optional, Tuple, TypeVar


K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class LruCache(Generic[K, V]):
    """
    Thread-safe LRU cache with optional time-to-live

    - ``max_size`` only: least recently used entries are evicted
    - ``ttl`` (seconds) also set: entries older than ``ttl`` are dropped on access

    Attributes:
        hits: Number of successful lookups
        misses: Number of failed lookups (absent or expired)
    """

    def __init__(self, max_size: int = 200, ttl: Optional[float] = None):
        """
        Initialize cache.

        Args:
            max_size: Maximum number of entries
            ttl: Time-to-live in seconds (None = no expiry)
        """
        self.max_size = max_size
        self.ttl = ttl
        self.hits = 0
        self.misses = 0
        self._entries: "OrderedDict[K, Tuple[V, float]]" = OrderedDict()
        self._lock = threading.RLock()

    def get(self, key: K) -> Optional[V]:
        """Get value, moving it to the most recently used end"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            value, created_at = entry
            if self._expired(created_at):
                del self._entries[key]
                self.misses += 1
                return None

            self._entries.move_to_end(key)
            self.hits += 1
            return value

    def set(self, key: K, value: V) -> "LruCache[K, V]":
        """Store value, evicting the least recently used entry when full"""
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            self._entries[key] = (value, time.monotonic())
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)
        return self

    def delete(self, key: K) -> bool:
        """Delete entry by key; True if it existed"""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all entries and counters"""
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Any) -> bool:
        return self.get(key) is not None

    def _expired(self, created_at: float) -> bool:
        return self.ttl is not None and time.monotonic() - created_at > self.ttl

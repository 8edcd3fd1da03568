"""Bounded metadata cache keyed by path and modification time."""

import os
import threading
from collections import OrderedDict
from typing import Generic, TypeVar

V = TypeVar("V")


class StatCache(Generic[V]):
    """Fixed-capacity LRU map from path to a value stamped with an mtime.

    A lookup only hits when the caller's current ``mtime_ns`` matches the
    stamp stored with the value; a mismatch evicts the stale value.
    Thread-safe: scanner workers share one instance.

    Attributes:
        capacity: Maximum number of entries; 0 disables caching.
    """

    def __init__(self, capacity: int = 4096) -> None:
        self.capacity = capacity
        self._items: OrderedDict[str, tuple[int, V]] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def get(self, path: str, mtime_ns: int) -> V | None:
        """Return the cached value if it was stored for this mtime."""
        with self._lock:
            cached = self._items.get(path)
            if cached is None:
                self.misses += 1
                return None
            stamp, value = cached
            if stamp != mtime_ns:
                del self._items[path]
                self.misses += 1
                return None
            self._items.move_to_end(path)
            self.hits += 1
            return value

    def put(self, path: str, mtime_ns: int, value: V) -> None:
        """Store a value, evicting the least recently used entry if full."""
        if self.capacity <= 0:
            return
        with self._lock:
            self._items[path] = (mtime_ns, value)
            self._items.move_to_end(path)
            while len(self._items) > self.capacity:
                self._items.popitem(last=False)

    def invalidate_under(self, root: str) -> int:
        """Drop ``root`` and every cached path below it.

        Returns:
            Number of entries removed.
        """
        prefix = root.rstrip(os.sep) + os.sep
        with self._lock:
            stale = [p for p in self._items if p == root or p.startswith(prefix)]
            for p in stale:
                del self._items[p]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

"""Bounded in-process TTL cache."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable


class TTLCache:
    """Thread-safe mapping whose entries expire ``ttl_seconds`` after they were written.

    Expired entries are dropped lazily on read and in bulk by :meth:`sweep`.
    When ``max_entries`` is reached the oldest entry is evicted.
    """

    def __init__(self, ttl_seconds: float, max_entries: int = 1024, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._data: OrderedDict[Hashable, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return default
            written_at, value = entry
            if self._clock() - written_at >= self.ttl_seconds:
                del self._data[key]
                return default
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            if key in self._data:
                del self._data[key]
            elif len(self._data) >= self.max_entries:
                self._data.popitem(last=False)
            self._data[key] = (self._clock(), value)

    def pop(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._data.pop(key, None)
        return default if entry is None else entry[1]

    def sweep(self) -> int:
        """Remove expired entries; return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (written_at, _) in self._data.items() if now - written_at >= self.ttl_seconds]
            for key in expired:
                del self._data[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: Hashable) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

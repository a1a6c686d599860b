"""Thread-safe TTL cache for search results."""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: float


class InMemoryTTLCache:
    """
    Process-wide cache from exact query string to search results.

    Entries expire ``ttl_seconds`` after they are stored; expired entries are
    evicted lazily on read. A lock guards the map because search fan-out runs
    provider calls in executor threads.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            ttl_seconds: Time to live for cached entries
            clock: Monotonic time source, injectable for tests
        """
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._ttl = ttl_seconds
        self._clock = clock

    def get(self, key: str) -> Any | None:
        """Return the cached value for ``key`` or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() < entry.expires_at:
                return entry.value
            del self._entries[key]
            return None

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self._ttl)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

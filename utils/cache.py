"""Short-lived in-memory cache for campaign and dashboard responses.

Entries live for a fixed TTL (five minutes by default) and the cache holds
at most ``maxsize`` entries. There is no invalidation beyond expiry and
the explicit ``clear()`` exposed through ``DELETE /api/cache``.
"""

import threading
import time
from typing import Any, Hashable


class TTLCache:
    """Thread-safe dict with per-entry expiry.

    Usage::

        cache = TTLCache(maxsize=256, ttl_seconds=300)
        cache.set(("promocoes", filters.cache_key(), 1, 20), payload)
        cache.get(("promocoes", filters.cache_key(), 1, 20))
    """

    def __init__(self, maxsize: int = 256, ttl_seconds: float = 300.0) -> None:
        self._maxsize = maxsize
        self._ttl = ttl_seconds
        # key -> (value, expires_at on the monotonic clock)
        self._store: dict[Hashable, tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def ttl(self) -> float:
        return self._ttl

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def get(self, key: Hashable) -> Any | None:
        """Return the cached value for *key*, or None if absent or expired."""
        with self._lock:
            entry = self._store.get(key)
            if entry is not None and time.monotonic() <= entry[1]:
                self._hits += 1
                return entry[0]
            if entry is not None:
                del self._store[key]
            self._misses += 1
            return None

    def set(self, key: Hashable, value: Any) -> None:
        """Store *value* under *key*.

        When full, the entry closest to expiry is dropped first.
        """
        expires_at = time.monotonic() + self._ttl
        with self._lock:
            if key not in self._store and len(self._store) >= self._maxsize:
                soonest = min(self._store, key=lambda k: self._store[k][1])
                del self._store[soonest]
            self._store[key] = (value, expires_at)

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._store.pop(key, None)

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = time.monotonic()
        with self._lock:
            expired = [k for k, (_, exp) in self._store.items() if now > exp]
            for k in expired:
                del self._store[k]
            return len(expired)

    def keys(self) -> list[Hashable]:
        """Live keys, oldest first."""
        self.purge_expired()
        with self._lock:
            return list(self._store)

    def clear(self) -> None:
        """Remove all entries and reset the hit/miss counters."""
        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> dict[str, int]:
        """Return ``hits``, ``misses`` and live ``size``."""
        self.purge_expired()
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "size": len(self._store),
            }

"""
Time-boxed memoization of outbound market-data requests.

Entries are keyed by the exact request signature (endpoint plus
canonical JSON parameters) and are served only while younger than the
TTL. Expired entries stay resident until capacity pressure evicts
them: when a put would exceed ``max_entries``, expired entries are
dropped first, then the oldest stored ones.

``get_or_fetch`` serializes callers per key, so concurrent identical
lookups reach the upstream at most once per TTL window.
"""

import json
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60.0
DEFAULT_MAX_ENTRIES = 512


def make_cache_key(endpoint: str, params: Optional[dict] = None) -> str:
    """Build the request signature used as a cache key."""
    return f"{endpoint}:{json.dumps(params or {}, sort_keys=True, default=str)}"


class QuoteCache:
    """TTL cache with capacity-bounded eviction.

    Args:
        ttl_seconds: Lifetime of an entry.
        max_entries: Maximum number of resident entries.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()
        self._key_locks: dict[str, threading.Lock] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at >= self._ttl:
                return None
            return value

    def put(self, key: str, value: Any) -> None:
        """Store ``value`` stamped with the current time, overwriting any entry."""
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (self._clock(), value)
            if len(self._entries) > self._max_entries:
                self._evict()

    def get_or_fetch(self, key: str, fetch: Callable[[], Any]) -> Any:
        """Return the cached value or call ``fetch`` and cache its result.

        Exceptions raised by ``fetch`` propagate, nothing is cached and
        the key's lock is released from the registry.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        with self._key_lock(key):
            cached = self.get(key)
            if cached is not None:
                return cached
            try:
                value = fetch()
            except Exception:
                self._drop_key_lock(key)
                raise
            self.put(key, value)
            return value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._key_locks.clear()

    def _key_lock(self, key: str) -> threading.Lock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    def _drop_key_lock(self, key: str) -> None:
        with self._lock:
            if key not in self._entries:
                self._key_locks.pop(key, None)

    def _evict(self) -> None:
        now = self._clock()
        expired = [k for k, (ts, _) in self._entries.items() if now - ts >= self._ttl]
        for key in expired:
            del self._entries[key]
            self._key_locks.pop(key, None)
        while len(self._entries) > self._max_entries:
            key, _ = self._entries.popitem(last=False)
            self._key_locks.pop(key, None)
        logger.debug(
            "Quote cache evicted %d expired entries, %d resident",
            len(expired),
            len(self._entries),
        )

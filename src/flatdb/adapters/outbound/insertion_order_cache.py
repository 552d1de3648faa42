"""Insertion-order read cache implementation.

This adapter implements the ReadCache protocol with a bounded
``OrderedDict``. When the cache grows past its capacity the entries
inserted first are trimmed. Lookups never move an entry, so the policy
is first-in-first-out rather than LRU.

Thread Safety:
    All operations are serialized by a single re-entrant lock.

    A reader that misses, reads the file and then stores the value races
    with writers invalidating the same key. Every invalidation bumps a
    generation counter; the reader captures ``generation`` before its
    read and passes it to ``store``, which drops the value if any
    invalidation happened in between.
"""

from __future__ import annotations

import threading
from collections import OrderedDict

from flatdb.domain.value_objects import Value
from flatdb.infrastructure.metrics import MetricsRegistry
from flatdb.ports.inbound.read_cache import DEFAULT_CAPACITY, ReadCacheStats


class InsertionOrderCache:
    """Bounded cache mapping ``database.key`` to decoded values.

    Attributes:
        capacity: Maximum number of entries kept after a store.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            capacity: Maximum number of entries.
            metrics: Optional registry receiving hit/miss/eviction counts.

        Raises:
            ValueError: If capacity < 1.
        """
        if capacity < 1:
            raise ValueError(f"Cache capacity must be >= 1, got {capacity}")

        self._capacity = capacity
        self._metrics = metrics
        self._lock = threading.RLock()

        # Oldest insertion at the front
        self._entries: OrderedDict[str, Value] = OrderedDict()

        self._hit_count = 0
        self._miss_count = 0
        self._eviction_count = 0

        # Bumped by every invalidate and clear
        self._generation = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def generation(self) -> int:
        """Invalidation counter to capture before reading a value to store."""
        with self._lock:
            return self._generation

    def lookup(self, key: str) -> tuple[bool, Value | None]:
        """Look up ``key`` without changing its eviction position."""
        with self._lock:
            if key in self._entries:
                self._hit_count += 1
                if self._metrics is not None:
                    self._metrics.cache_hits_total.inc()
                return True, self._entries[key]

            self._miss_count += 1
            if self._metrics is not None:
                self._metrics.cache_misses_total.inc()
            return False, None

    def store(self, key: str, value: Value, generation: int | None = None) -> bool:
        """Insert ``key`` and trim the oldest entries beyond capacity.

        Re-storing a cached key replaces its value in place.

        Args:
            key: Fully-qualified key.
            value: Decoded value.
            generation: ``generation`` captured before ``value`` was read.
                The value is dropped when an invalidation happened since.

        Returns:
            True if the value was cached.
        """
        with self._lock:
            if generation is not None and generation != self._generation:
                return False

            self._entries[key] = value

            evicted = 0
            while len(self._entries) > self._capacity:
                self._entries.popitem(last=False)
                evicted += 1

            self._eviction_count += evicted
            if self._metrics is not None:
                if evicted:
                    self._metrics.cache_evictions_total.inc(evicted)
                self._metrics.cache_entries.set(len(self._entries))
            return True

    def invalidate(self, key: str) -> bool:
        """Remove ``key``. Returns True if it was cached."""
        with self._lock:
            self._generation += 1
            if key not in self._entries:
                return False
            del self._entries[key]
            self._update_gauge()
            return True

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._generation += 1
            self._entries.clear()
            self._update_gauge()

    def keys(self) -> list[str]:
        """Return cached keys, oldest insertion first."""
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> ReadCacheStats:
        """Return cache statistics for monitoring."""
        with self._lock:
            return ReadCacheStats(
                capacity=self._capacity,
                entries=len(self._entries),
                hit_count=self._hit_count,
                miss_count=self._miss_count,
                eviction_count=self._eviction_count,
            )

    def _update_gauge(self) -> None:
        if self._metrics is not None:
            self._metrics.cache_entries.set(len(self._entries))

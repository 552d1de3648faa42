"""Read cache port for decoded values.

This inbound port defines the contract for the bounded in-process cache
that serves direct single-key gets. Keys are fully-qualified
``database.key`` strings.

Eviction order is the order entries were inserted. Reading an entry
does not refresh its position.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import Protocol

from flatdb.domain.value_objects import Value

DEFAULT_CAPACITY = 30


@dataclass
class ReadCacheStats:
    """Statistics for read cache monitoring."""

    capacity: int  # Maximum number of entries
    entries: int  # Entries currently held
    hit_count: int  # Lookups served from the cache
    miss_count: int  # Lookups that fell through to the file
    eviction_count: int  # Entries trimmed by the capacity bound

    @property
    def hit_ratio(self) -> float:
        """Fraction of lookups served from the cache."""
        total = self.hit_count + self.miss_count
        return self.hit_count / total if total > 0 else 0.0


class ReadCache(Protocol):
    """Protocol for the bounded read cache."""

    @property
    @abstractmethod
    def capacity(self) -> int:
        """Return the maximum number of entries."""
        ...

    @property
    @abstractmethod
    def generation(self) -> int:
        """Return the invalidation counter, bumped by invalidate and clear."""
        ...

    @abstractmethod
    def lookup(self, key: str) -> tuple[bool, Value | None]:
        """Look up ``key``.

        Returns:
            ``(True, value)`` on a hit, ``(False, None)`` on a miss.
        """
        ...

    @abstractmethod
    def store(self, key: str, value: Value, generation: int | None = None) -> bool:
        """Insert ``key`` and trim the oldest entries beyond capacity.

        When ``generation`` is given and the cache was invalidated since
        it was captured, nothing is stored.

        Returns:
            True if the value was cached.
        """
        ...

    @abstractmethod
    def invalidate(self, key: str) -> bool:
        """Remove ``key``. Returns True if it was cached."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""
        ...

    @abstractmethod
    def __contains__(self, key: object) -> bool:
        """Check whether ``key`` is cached without counting a lookup."""
        ...

    @abstractmethod
    def __len__(self) -> int:
        """Return the number of cached entries."""
        ...

    @abstractmethod
    def get_stats(self) -> ReadCacheStats:
        """Return cache statistics for monitoring."""
        ...

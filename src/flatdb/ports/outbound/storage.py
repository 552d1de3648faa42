"""Storage port for line-oriented database file access.

This outbound port defines the contract the query and mutation engines
use to touch database files. Implementations decide how locking and
compression are realized.

The storage accessor is responsible for:
- Opening files with a shared or exclusive advisory lock
- Transparent compression of everything read and written
- Exposing line-sequential reads and appends
- Creating, removing and atomically renaming files
"""

from __future__ import annotations

from abc import abstractmethod
from enum import Enum
from pathlib import Path
from typing import Iterator, Protocol


class OpenMode(Enum):
    """How a database file is opened."""

    READ = "r"
    WRITE = "w"
    APPEND = "a"

    @property
    def default_lock(self) -> LockMode:
        """Shared lock for reads, exclusive for writes and appends."""
        return LockMode.SHARED if self is OpenMode.READ else LockMode.EXCLUSIVE


class LockMode(Enum):
    """Advisory lock modes.

    NONE is only valid for a caller that already holds an exclusive lock
    on the same file through another handle.
    """

    NONE = "none"
    SHARED = "shared"
    EXCLUSIVE = "exclusive"


class StorageHandle(Protocol):
    """An open, locked database file."""

    @property
    @abstractmethod
    def path(self) -> Path:
        """Path the handle was opened on."""
        ...

    @abstractmethod
    def lines(self) -> Iterator[str]:
        """Yield raw lines in on-disk order, terminators included.

        The iterator is lazy and cannot be restarted once consumed; a
        fresh handle is required to scan again.
        """
        ...

    @abstractmethod
    def append(self, line: str) -> None:
        """Write one raw line at the end of the file."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the lock and the handle. Safe to call more than once."""
        ...

    def __enter__(self) -> StorageHandle: ...

    def __exit__(self, exc_type, exc_val, exc_tb) -> None: ...


class Storage(Protocol):
    """Protocol for database file access.

    Every failure of the underlying file system is reported as
    ``StorageIOError``; the caller decides whether it is fatal.
    """

    @abstractmethod
    def open(
        self,
        path: Path,
        mode: OpenMode = OpenMode.READ,
        lock: LockMode | None = None,
    ) -> StorageHandle:
        """Open ``path`` and acquire the requested lock.

        Args:
            path: File to open.
            mode: READ, WRITE (truncate) or APPEND.
            lock: Lock to take; defaults to ``mode.default_lock``.

        Raises:
            StorageIOError: If the file cannot be opened or locked.
        """
        ...

    @abstractmethod
    def create_empty(self, path: Path) -> None:
        """Create ``path`` as an empty database, truncating any content."""
        ...

    @abstractmethod
    def create_exclusive(self, path: Path) -> None:
        """Create ``path`` as an empty database; fail if it exists."""
        ...

    @abstractmethod
    def exists(self, path: Path) -> bool:
        """Return True if ``path`` exists."""
        ...

    @abstractmethod
    def remove(self, path: Path) -> None:
        """Delete ``path``."""
        ...

    @abstractmethod
    def replace(self, source: Path, target: Path) -> None:
        """Atomically rename ``source`` over ``target``."""
        ...

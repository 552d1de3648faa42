"""File-based Storage implementation.

This adapter implements the Storage protocol with plain files, POSIX
advisory ``flock`` locks and optional gzip wrapping.

Locking:
    Readers take a shared lock, writers an exclusive one. Locks belong to
    the open file description, so two handles on the same file conflict
    even inside one process.

    A handle that had to wait for its lock re-checks that the path still
    names the inode it locked. A concurrent replace renames a new file
    over the path; in that case the stale handle is dropped and the path
    reopened, so no caller ever reads or appends to an unlinked file.

Compression:
    With ``gzip=True`` every handle is wrapped in ``gzip.GzipFile``.
    Appends add a new gzip member, which readers decode transparently.
"""

from __future__ import annotations

import fcntl
import gzip
import os
from pathlib import Path
from typing import BinaryIO, Iterator

from flatdb.domain.exceptions import CorruptRecordError, StorageIOError
from flatdb.infrastructure.logging import get_logger
from flatdb.ports.outbound.storage import LockMode, OpenMode

logger = get_logger(__name__)

_OPEN_FLAGS = {
    OpenMode.READ: os.O_RDONLY,
    OpenMode.WRITE: os.O_WRONLY | os.O_CREAT,
    OpenMode.APPEND: os.O_WRONLY | os.O_CREAT | os.O_APPEND,
}

_FLOCK_FLAGS = {
    LockMode.SHARED: fcntl.LOCK_SH,
    LockMode.EXCLUSIVE: fcntl.LOCK_EX,
}

FILE_PERMISSIONS = 0o644


def _describe(error: OSError) -> str:
    return error.strerror or str(error)


class FileHandle:
    """An open, locked database file.

    Attributes:
        path: Path the handle was opened on.
        mode: How the file was opened.
        lock: Lock held by this handle.
    """

    def __init__(
        self,
        path: Path,
        raw: BinaryIO,
        mode: OpenMode,
        lock: LockMode,
        compressed: bool = False,
    ) -> None:
        self._path = path
        self._raw = raw
        self._mode = mode
        self._lock = lock
        self._stream: BinaryIO = raw
        if compressed:
            self._stream = gzip.GzipFile(fileobj=raw, mode=f"{mode.value}b")  # type: ignore[assignment]
        self._closed = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def mode(self) -> OpenMode:
        return self._mode

    @property
    def lock(self) -> LockMode:
        return self._lock

    @property
    def closed(self) -> bool:
        return self._closed

    def lines(self) -> Iterator[str]:
        """Yield raw lines in on-disk order.

        Raises:
            StorageIOError: If the file (or its gzip stream) cannot be read.
            CorruptRecordError: If a line is not valid UTF-8.
        """
        if self._closed:
            raise StorageIOError(f'Database "{self._path}" is closed')

        while True:
            try:
                raw_line = self._stream.readline()
            except (OSError, EOFError) as e:
                raise StorageIOError(f'Failed to read database "{self._path}": {e}') from e
            if not raw_line:
                return
            try:
                line = raw_line.decode("utf-8")
            except UnicodeDecodeError as e:
                raise CorruptRecordError(
                    f'Corrupt line in database "{self._path}": {e}'
                ) from e
            yield line

    def append(self, line: str) -> None:
        """Write one raw line at the end of the stream."""
        if self._closed:
            raise StorageIOError(f'Database "{self._path}" is closed')
        try:
            self._stream.write(line.encode("utf-8"))
        except OSError as e:
            raise StorageIOError(
                f'Failed to write to database "{self._path}": {_describe(e)}'
            ) from e

    def close(self) -> None:
        """Flush, unlock and close. Runs on every exit path."""
        if self._closed:
            return
        self._closed = True

        try:
            if self._stream is not self._raw:
                self._stream.close()
            if self._mode is not OpenMode.READ:
                self._raw.flush()
                os.fsync(self._raw.fileno())
        except OSError as e:
            raise StorageIOError(
                f'Failed to write to database "{self._path}": {_describe(e)}'
            ) from e
        finally:
            try:
                if self._lock is not LockMode.NONE:
                    fcntl.flock(self._raw.fileno(), fcntl.LOCK_UN)
            finally:
                self._raw.close()

    def __enter__(self) -> FileHandle:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()


class FileStorage:
    """File-based implementation of the Storage protocol.

    Attributes:
        gzip: Whether every file is gzip-wrapped.
    """

    def __init__(self, gzip: bool = False) -> None:
        """Initialize the storage accessor.

        Args:
            gzip: Wrap all reads and writes in gzip compression.
        """
        self._gzip = gzip

    @property
    def gzip(self) -> bool:
        return self._gzip

    def open(
        self,
        path: Path,
        mode: OpenMode = OpenMode.READ,
        lock: LockMode | None = None,
    ) -> FileHandle:
        """Open ``path`` and acquire the requested lock.

        Args:
            path: File to open.
            mode: READ, WRITE (truncate once locked) or APPEND.
            lock: Lock to take; defaults to shared for READ and exclusive
                otherwise.

        Returns:
            An open FileHandle holding the lock.

        Raises:
            StorageIOError: If the file cannot be opened or locked.
        """
        path = Path(path)
        lock = lock or mode.default_lock

        while True:
            raw = self._open_raw(path, mode)
            try:
                if lock is not LockMode.NONE:
                    fcntl.flock(raw.fileno(), _FLOCK_FLAGS[lock])
                    if not self._is_current(raw, path):
                        # Replaced or removed while waiting for the lock
                        logger.debug("storage_reopen", path=str(path))
                        raw.close()
                        continue
                if mode is OpenMode.WRITE:
                    raw.truncate(0)
            except OSError as e:
                raw.close()
                raise StorageIOError(
                    f'Failed to lock database "{path}": {_describe(e)}'
                ) from e

            # A gzip writer emits its header on construction
            try:
                return FileHandle(path, raw, mode, lock, compressed=self._gzip)
            except OSError as e:
                raw.close()
                raise StorageIOError(
                    f'Failed to open database "{path}": {_describe(e)}'
                ) from e

    def create_empty(self, path: Path) -> None:
        """Create ``path`` as an empty database, truncating any content."""
        with self.open(path, OpenMode.WRITE):
            pass

    def create_exclusive(self, path: Path) -> None:
        """Create ``path`` as an empty database; fail if it already exists."""
        path = Path(path)
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, FILE_PERMISSIONS)
        except OSError as e:
            raise StorageIOError(
                f'Failed to create database "{path}": {_describe(e)}'
            ) from e
        os.close(fd)

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def remove(self, path: Path) -> None:
        """Delete ``path``."""
        try:
            Path(path).unlink()
        except OSError as e:
            raise StorageIOError(
                f'Failed to drop database "{path}": {_describe(e)}'
            ) from e

    def replace(self, source: Path, target: Path) -> None:
        """Atomically rename ``source`` over ``target``."""
        try:
            os.replace(source, target)
        except OSError as e:
            raise StorageIOError(
                f'Failed to move temp database "{source}" to "{target}": {_describe(e)}'
            ) from e

    def _open_raw(self, path: Path, mode: OpenMode) -> BinaryIO:
        try:
            fd = os.open(path, _OPEN_FLAGS[mode], FILE_PERMISSIONS)
        except OSError as e:
            raise StorageIOError(
                f'Failed to read database "{path}": {_describe(e)}'
            ) from e
        return os.fdopen(fd, "rb" if mode is OpenMode.READ else f"{mode.value}b")

    @staticmethod
    def _is_current(raw: BinaryIO, path: Path) -> bool:
        """Check that ``path`` still names the file behind ``raw``."""
        opened = os.fstat(raw.fileno())
        try:
            current = os.stat(path)
        except FileNotFoundError:
            return False
        return (opened.st_dev, opened.st_ino) == (current.st_dev, current.st_ino)

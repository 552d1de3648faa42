"""Query engine: read-only scans over a database file.

Every query opens the file with a shared lock, streams its lines once
and closes the handle. Queries never consult or populate the read cache;
the engine facade layers the cache over ``find`` for direct gets.
"""

from __future__ import annotations

from flatdb.domain.entities import line_key, split_line
from flatdb.domain.exceptions import KeyNotFoundError
from flatdb.domain.services.record_codec import RecordCodec
from flatdb.domain.value_objects import Database, Value
from flatdb.infrastructure.logging import get_logger
from flatdb.ports.outbound.storage import OpenMode, Storage

logger = get_logger(__name__)


def numeric_key(key: str) -> int | None:
    """Return the integer form of an all-digit key, else None."""
    if key.isascii() and key.isdigit():
        return int(key)
    return None


class QueryEngine:
    """Read-only operations over database files.

    Example:
        >>> queries = QueryEngine(FileStorage(), RecordCodec())
        >>> queries.count(db)
        3
        >>> queries.select(db, offset=1, limit=1)
        {'2': 'second'}
    """

    def __init__(self, storage: Storage, codec: RecordCodec) -> None:
        self._storage = storage
        self._codec = codec

    def count(self, db: Database) -> int:
        """Return the number of records in ``db``."""
        with self._storage.open(db.path, OpenMode.READ) as handle:
            return sum(1 for _ in handle.lines())

    def has_key(self, db: Database, key: str) -> bool:
        """Return True iff a record's key equals ``key`` exactly."""
        with self._storage.open(db.path, OpenMode.READ) as handle:
            return any(line_key(line) == key for line in handle.lines())

    def keys(self, db: Database) -> list[str]:
        """Return every key in on-disk order."""
        with self._storage.open(db.path, OpenMode.READ) as handle:
            return [line_key(line) for line in handle.lines()]

    def max_key(self, db: Database) -> int:
        """Return the greatest integer key, or 0 when none is numeric."""
        highest = 0
        with self._storage.open(db.path, OpenMode.READ) as handle:
            for line in handle.lines():
                number = numeric_key(line_key(line))
                if number is not None and number > highest:
                    highest = number
        return highest

    def select(
        self,
        db: Database,
        offset: int = 0,
        limit: int | None = None,
    ) -> dict[str, Value]:
        """Decode a positional window of records.

        Records at scan positions ``offset`` onwards are decoded, at most
        ``limit`` of them. The window applies to line positions, not to
        any predicate.

        Args:
            db: Database to scan.
            offset: 0-based position of the first record returned.
            limit: Maximum number of records, or None for all.

        Returns:
            Mapping of key to value in scan order.
        """
        selected: dict[str, Value] = {}
        if limit == 0:
            return selected

        taken = 0
        with self._storage.open(db.path, OpenMode.READ) as handle:
            for position, line in enumerate(handle.lines()):
                if position < offset:
                    continue
                key, token = split_line(line)
                selected[key] = self._codec.decode(token)
                taken += 1
                if limit is not None and taken >= limit:
                    break

        logger.debug("select", database=db.name, offset=offset, limit=limit, rows=len(selected))
        return selected

    def find(self, db: Database, key: str) -> Value:
        """Decode the value stored under ``key``.

        Raises:
            KeyNotFoundError: If no record has ``key``.
        """
        with self._storage.open(db.path, OpenMode.READ) as handle:
            for line in handle.lines():
                record_key, token = split_line(line)
                if record_key == key:
                    return self._codec.decode(token)

        raise KeyNotFoundError(f'Database key "{db.qualify(key)}" does not exist')

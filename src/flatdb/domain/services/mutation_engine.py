"""Mutation engine: insert, update, delete and drop.

Updates and deletes never modify a database file in place. They follow
the replace protocol:

    1. Lock the primary file exclusively (serializes all writers).
    2. Create the temp sibling exclusively. A temp file found while the
       exclusive lock is held can only be left over from a replace that
       failed at rename time; it is reclaimed.
    3. Invalidate the cached value for ``database.key``.
    4. Stream the primary into the temp file, replacing (update) or
       omitting (delete) the matching line and copying all others.
    5. Close the temp file.
    6. Without a match, remove the temp file and fail with KeyNotFound;
       the primary file is untouched.
    7. Rename the temp file over the primary.

The rename is the only visibility boundary: readers see either the
complete old file or the complete new one.
"""

from __future__ import annotations

from flatdb.domain.entities import format_line, line_key
from flatdb.domain.exceptions import KeyAlreadyExistsError, KeyNotFoundError, StoreError
from flatdb.domain.services.query_engine import numeric_key
from flatdb.domain.services.record_codec import RecordCodec
from flatdb.domain.value_objects import Action, Database, Value
from flatdb.infrastructure.logging import get_logger
from flatdb.infrastructure.metrics import MetricsRegistry
from flatdb.ports.inbound.read_cache import ReadCache
from flatdb.ports.outbound.storage import LockMode, OpenMode, Storage

logger = get_logger(__name__)


class MutationEngine:
    """Write operations over database files.

    Thread Safety:
        Writers on the same database exclude each other through the
        primary file's exclusive lock, across threads and processes.
    """

    def __init__(
        self,
        storage: Storage,
        codec: RecordCodec,
        cache: ReadCache,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._storage = storage
        self._codec = codec
        self._cache = cache
        self._metrics = metrics

    def insert(self, db: Database, key: str | None, value: Value) -> str:
        """Append a new record.

        Args:
            db: Target database.
            key: Explicit key, or None to use the greatest integer key + 1.
            value: Value to store.

        Returns:
            The key the record was stored under.

        Raises:
            UnsupportedTypeError: If ``value`` cannot be encoded.
            KeyAlreadyExistsError: If ``key`` is already stored.
            StorageIOError: If the file cannot be read or written.
        """
        token = self._codec.encode(value)

        with self._storage.open(db.path, OpenMode.READ, LockMode.EXCLUSIVE) as guard:
            highest = 0
            for line in guard.lines():
                existing = line_key(line)
                if key is None:
                    number = numeric_key(existing)
                    if number is not None and number > highest:
                        highest = number
                elif existing == key:
                    raise KeyAlreadyExistsError(
                        f'Failed to set key "{db.qualify(key)}", key already exists in database'
                    )

            if key is None:
                key = str(highest + 1)

            # The guard already holds the exclusive lock
            with self._storage.open(db.path, OpenMode.APPEND, LockMode.NONE) as out:
                out.append(format_line(key, token))

        logger.debug("record_inserted", database=db.name, key=key)
        return key

    def update(self, db: Database, key: str, value: Value) -> bool:
        """Replace the value stored under ``key``.

        Raises:
            UnsupportedTypeError: If ``value`` cannot be encoded.
            KeyNotFoundError: If ``key`` is not stored.
            StorageIOError: On any file failure.
        """
        replacement = format_line(key, self._codec.encode(value))
        return self._replace(db, key, Action.UPDATE, replacement)

    def delete(self, db: Database, key: str) -> bool:
        """Remove the record stored under ``key``.

        Raises:
            KeyNotFoundError: If ``key`` is not stored.
            StorageIOError: On any file failure.
        """
        return self._replace(db, key, Action.DELETE, None)

    def drop(self, db: Database) -> bool:
        """Delete the database file and clear the entire read cache."""
        with self._storage.open(db.path, OpenMode.READ, LockMode.EXCLUSIVE):
            self._storage.remove(db.path)

        self._cache.clear()
        logger.info("database_dropped", database=db.name, path=str(db.path))
        return True

    def _replace(
        self,
        db: Database,
        key: str,
        action: Action,
        replacement: str | None,
    ) -> bool:
        with self._storage.open(db.path, OpenMode.READ, LockMode.EXCLUSIVE) as source:
            self._create_temp(db)
            self._cache.invalidate(db.qualify(key))

            matched = False
            try:
                with self._storage.open(db.temp_path, OpenMode.WRITE) as temp:
                    for line in source.lines():
                        if line_key(line) == key:
                            matched = True
                            if replacement is not None:
                                temp.append(replacement)
                            continue
                        temp.append(line)
            except StoreError:
                self._discard_temp(db)
                self._count_replace(action, "failed")
                raise

            if not matched:
                self._storage.remove(db.temp_path)
                self._count_replace(action, "not_found")
                raise KeyNotFoundError(
                    f'Failed to {action.value} key "{db.qualify(key)}" (does not exist)'
                )

            try:
                self._storage.replace(db.temp_path, db.path)
            except StoreError:
                self._count_replace(action, "failed")
                raise

        self._count_replace(action, "renamed")
        logger.debug("record_replaced", database=db.name, key=key, action=action.value)
        return True

    def _create_temp(self, db: Database) -> None:
        """Create the temp sibling, reclaiming one left by a failed replace."""
        if self._storage.exists(db.temp_path):
            logger.warning(
                "orphan_temp_reclaimed",
                database=db.name,
                path=str(db.temp_path),
            )
            if self._metrics is not None:
                self._metrics.orphans_reclaimed_total.inc()
            self._storage.remove(db.temp_path)

        self._storage.create_exclusive(db.temp_path)

    def _discard_temp(self, db: Database) -> None:
        """Best-effort removal of a partially written temp file."""
        try:
            self._storage.remove(db.temp_path)
        except StoreError as e:
            # Left as an orphan; the next replace reclaims it
            logger.warning("temp_discard_failed", path=str(db.temp_path), error=str(e))

    def _count_replace(self, action: Action, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.replaces_total.labels(action=action.value, outcome=outcome).inc()

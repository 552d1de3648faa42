"""Unit tests for MutationEngine and the replace protocol."""

from __future__ import annotations

from unittest import mock

import pytest

from flatdb.adapters.outbound import FileStorage, InsertionOrderCache
from flatdb.domain.exceptions import (
    KeyAlreadyExistsError,
    KeyNotFoundError,
    StorageIOError,
    UnsupportedTypeError,
)
from flatdb.domain.services import MutationEngine, QueryEngine, RecordCodec
from flatdb.domain.value_objects import Database
from flatdb.infrastructure.metrics import MetricsRegistry


@pytest.fixture
def populated(database: Database, mutations: MutationEngine) -> Database:
    """Database holding keys 1, 2 and 3."""
    for value in ("one", "two", "three"):
        mutations.insert(database, None, value)
    return database


class TestInsert:
    """Tests for MutationEngine.insert."""

    def test_insert_explicit_key(
        self, mutations: MutationEngine, queries: QueryEngine, database: Database
    ) -> None:
        assert mutations.insert(database, "alpha", [1, 2]) == "alpha"
        assert queries.find(database, "alpha") == [1, 2]

    def test_auto_increment(
        self, mutations: MutationEngine, queries: QueryEngine, database: Database
    ) -> None:
        keys = [mutations.insert(database, None, f"v{i}") for i in range(3)]
        assert keys == ["1", "2", "3"]
        assert queries.max_key(database) == 3

    def test_auto_increment_skips_to_max(
        self, mutations: MutationEngine, database: Database
    ) -> None:
        mutations.insert(database, "10", "ten")
        mutations.insert(database, "name", "not numeric")
        assert mutations.insert(database, None, "next") == "11"

    def test_insert_existing_key(
        self, mutations: MutationEngine, queries: QueryEngine, populated: Database
    ) -> None:
        before = populated.path.read_bytes()

        with pytest.raises(KeyAlreadyExistsError, match='"default.2", key already exists'):
            mutations.insert(populated, "2", "again")

        assert populated.path.read_bytes() == before
        assert queries.find(populated, "2") == "two"

    def test_insert_unsupported_value(
        self, mutations: MutationEngine, database: Database
    ) -> None:
        with pytest.raises(UnsupportedTypeError):
            mutations.insert(database, "1", None)
        assert database.path.read_bytes() == b""


class TestReplace:
    """Tests for update and delete."""

    def test_update_replaces_one_line(
        self, mutations: MutationEngine, queries: QueryEngine, populated: Database
    ) -> None:
        lines_before = populated.path.read_text().splitlines()

        assert mutations.update(populated, "2", {"new": 1}) is True

        lines_after = populated.path.read_text().splitlines()
        assert queries.keys(populated) == ["1", "2", "3"]
        assert lines_after[0] == lines_before[0]
        assert lines_after[2] == lines_before[2]
        assert lines_after[1] != lines_before[1]
        assert queries.find(populated, "2") == {"new": 1}

    def test_delete_removes_one_line(
        self, mutations: MutationEngine, queries: QueryEngine, populated: Database
    ) -> None:
        assert mutations.delete(populated, "2") is True
        assert queries.keys(populated) == ["1", "3"]
        assert queries.select(populated) == {"1": "one", "3": "three"}

    @pytest.mark.parametrize("operation", ["update", "delete"])
    def test_missing_key_leaves_file_identical(
        self, mutations: MutationEngine, populated: Database, operation: str
    ) -> None:
        before = populated.path.read_bytes()

        with pytest.raises(KeyNotFoundError, match=f'Failed to {operation} key "default.9"'):
            if operation == "update":
                mutations.update(populated, "9", "x")
            else:
                mutations.delete(populated, "9")

        assert populated.path.read_bytes() == before
        assert not populated.temp_path.exists()

    def test_replace_invalidates_cache(
        self,
        mutations: MutationEngine,
        cache: InsertionOrderCache,
        populated: Database,
    ) -> None:
        cache.store("default.2", "two")
        cache.store("default.3", "three")

        mutations.update(populated, "2", "changed")

        assert "default.2" not in cache
        assert "default.3" in cache

    def test_failed_lookup_still_invalidates(
        self,
        mutations: MutationEngine,
        cache: InsertionOrderCache,
        populated: Database,
    ) -> None:
        """The cache entry is dropped before the scan."""
        cache.store("default.9", "stale")
        with pytest.raises(KeyNotFoundError):
            mutations.delete(populated, "9")
        assert "default.9" not in cache

    def test_update_unsupported_value(
        self, mutations: MutationEngine, populated: Database
    ) -> None:
        before = populated.path.read_bytes()
        with pytest.raises(UnsupportedTypeError):
            mutations.update(populated, "1", {1, 2})
        assert populated.path.read_bytes() == before

    def test_orphan_temp_file_is_reclaimed(
        self,
        mutations: MutationEngine,
        queries: QueryEngine,
        populated: Database,
        metrics_registry: MetricsRegistry,
    ) -> None:
        populated.temp_path.write_text("garbage from a failed rename\n")

        mutations.update(populated, "1", "fresh")

        assert not populated.temp_path.exists()
        assert queries.select(populated) == {"1": "fresh", "2": "two", "3": "three"}
        sample = metrics_registry.registry.get_sample_value
        assert sample("flatdb_orphan_temp_files_reclaimed_total") == 1

    def test_rename_failure_keeps_original(
        self,
        storage: FileStorage,
        mutations: MutationEngine,
        populated: Database,
        metrics_registry: MetricsRegistry,
    ) -> None:
        before = populated.path.read_bytes()

        with mock.patch.object(
            storage, "replace", side_effect=StorageIOError("Failed to move temp database")
        ):
            with pytest.raises(StorageIOError):
                mutations.delete(populated, "1")

        assert populated.path.read_bytes() == before
        assert populated.temp_path.exists()

        sample = metrics_registry.registry.get_sample_value
        assert sample(
            "flatdb_replaces_total", {"action": "delete", "outcome": "failed"}
        ) == 1

        # A retry reclaims the orphan and succeeds
        mutations.delete(populated, "1")
        assert not populated.temp_path.exists()


class TestDrop:
    """Tests for drop."""

    def test_drop_removes_file_and_clears_cache(
        self,
        mutations: MutationEngine,
        cache: InsertionOrderCache,
        populated: Database,
    ) -> None:
        cache.store("default.1", "one")
        cache.store("other.1", "unrelated")

        assert mutations.drop(populated) is True

        assert not populated.path.exists()
        assert len(cache) == 0

    def test_drop_missing_database(
        self, mutations: MutationEngine, populated: Database
    ) -> None:
        mutations.drop(populated)
        with pytest.raises(StorageIOError):
            mutations.drop(populated)


class TestGzipMutations:
    """The replace protocol over gzip-wrapped files."""

    def test_update_and_delete(self, temp_dir, codec: RecordCodec) -> None:
        storage = FileStorage(gzip=True)
        db = Database.at(temp_dir, "zipped", ".dat", gzip=True)
        storage.create_exclusive(db.path)
        mutations = MutationEngine(storage, codec, InsertionOrderCache())
        queries = QueryEngine(storage, codec)

        for value in ("a", "b", "c"):
            mutations.insert(db, None, value)
        mutations.update(db, "2", "B")
        mutations.delete(db, "3")

        assert db.path.name == "zipped.dat.gz"
        assert queries.select(db) == {"1": "a", "2": "B"}

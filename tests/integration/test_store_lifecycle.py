"""End-to-end tests of the store through the engine facade."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from flatdb.application import FAILURE, StoreEngine
from flatdb.domain.exceptions import KeyAlreadyExistsError, KeyNotFoundError
from flatdb.infrastructure.config import StoreOptions
from flatdb.infrastructure.metrics import MetricsRegistry


pytestmark = pytest.mark.integration


class TestStoreLifecycle:
    """Full insert, read, mutate and drop cycles."""

    def test_insert_then_get(self, engine: StoreEngine) -> None:
        values = ["text", 42, 3.5, [1, "two"], {"nested": {"list": [1.0, 2]}}]
        for i, value in enumerate(values, start=1):
            assert engine(f"default.k{i}", value) == f"k{i}"

        for i, value in enumerate(values, start=1):
            result = engine(f"default.k{i}")
            assert result == value
            assert type(result) is type(value)

    def test_insert_is_exclusive(self, engine: StoreEngine, temp_dir: Path) -> None:
        engine("default.a", "first")
        before = (temp_dir / "default.dat").read_bytes()

        with pytest.raises(KeyAlreadyExistsError):
            engine("default.a", "second")

        assert (temp_dir / "default.dat").read_bytes() == before
        assert engine("default.a") == "first"

    def test_update_and_delete_touch_one_record(self, engine: StoreEngine, temp_dir: Path) -> None:
        for value in ("a", "b", "c", "d"):
            engine("default", value)
        lines = (temp_dir / "default.dat").read_text().splitlines()

        engine("default.2:update", "B")
        engine("default.4:delete")

        after = (temp_dir / "default.dat").read_text().splitlines()
        assert len(after) == 3
        assert after[0] == lines[0]
        assert after[2] == lines[2]
        assert after[1].startswith("2:")
        assert engine("default:select") == {"1": "a", "2": "B", "3": "c"}

    def test_missing_key_mutation_leaves_file(self, engine: StoreEngine, temp_dir: Path) -> None:
        engine("default", "a")
        before = (temp_dir / "default.dat").read_bytes()

        for address in ("default.7:update", "default.7:delete"):
            with pytest.raises(KeyNotFoundError):
                engine(address, "x")

        assert (temp_dir / "default.dat").read_bytes() == before
        assert not (temp_dir / "default.dat.tmp").exists()

    def test_auto_increment(self, engine: StoreEngine) -> None:
        assert [engine("default", v) for v in ("a", "b", "c")] == ["1", "2", "3"]
        assert engine("default:max") == 3

    def test_select_window(self, engine: StoreEngine) -> None:
        for i in range(1, 11):
            engine("default", i * 10)
        assert engine("default:select", [3, 2]) == {"4": 40, "5": 50}

    def test_update_visible_through_cache(self, engine: StoreEngine) -> None:
        engine("default.1", "old")
        assert engine("default.1") == "old"

        engine("default.1:update", "new")
        assert engine("default.1") == "new"

        engine("default.1:delete")
        with pytest.raises(KeyNotFoundError):
            engine("default.1")

    def test_cache_bounded(self, engine: StoreEngine) -> None:
        for i in range(1, 32):
            engine("default", i)
        for i in range(1, 32):
            engine(f"default.{i}")

        assert len(engine.cache) == 30
        assert "default.1" not in engine.cache
        assert "default.31" in engine.cache

    def test_drop_clears_every_cached_database(self, engine: StoreEngine, temp_dir: Path) -> None:
        engine("default.1", "d")
        engine("other.1", "o")
        engine("default.1")
        engine("other.1")
        assert len(engine.cache) == 2

        assert engine("other:drop") is True

        assert len(engine.cache) == 0
        assert not (temp_dir / "other.dat").exists()
        assert engine("default.1") == "d"

    def test_drop_then_reuse(self, engine: StoreEngine) -> None:
        engine("default", "a")
        engine("default:drop")
        assert engine("default:count") == 0
        assert engine("default", "b") == "1"

    def test_gzip_end_to_end(self, temp_dir: Path, metrics_registry: MetricsRegistry) -> None:
        engine = StoreEngine(
            options=StoreOptions(path=temp_dir, create={"zipped"}, gzip=True, errors=True),
            metrics=metrics_registry,
        )
        for value in ({"a": 1}, [2], "three"):
            engine("zipped", value)
        engine("zipped.2:update", [20])
        engine("zipped.3:delete")

        assert (temp_dir / "zipped.dat.gz").exists()
        assert engine("zipped:select") == {"1": {"a": 1}, "2": [20]}
        assert engine("zipped:keys") == ["1", "2"]

    def test_quiet_failures(self, quiet_engine: StoreEngine) -> None:
        assert quiet_engine("default.1:update", "x") is FAILURE
        assert quiet_engine("default.1:delete") is FAILURE
        assert quiet_engine("default:errors") == [
            'Failed to update key "default.1" (does not exist)',
            'Failed to delete key "default.1" (does not exist)',
        ]


@pytest.mark.slow
class TestConcurrency:
    """Concurrent writers on one database."""

    def test_concurrent_auto_inserts_get_distinct_keys(self, engine: StoreEngine) -> None:
        with ThreadPoolExecutor(max_workers=8) as pool:
            keys = list(pool.map(lambda i: engine("default", i), range(40)))

        assert sorted(keys, key=int) == [str(i) for i in range(1, 41)]
        assert engine("default:count") == 40

    def test_concurrent_replaces_lose_nothing(self, engine: StoreEngine) -> None:
        for i in range(1, 21):
            engine("default", 0)

        def bump(key: int) -> None:
            engine(f"default.{key}:update", key)

        threads = [threading.Thread(target=bump, args=(key,)) for key in range(1, 21)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert engine("default:select") == {str(i): i for i in range(1, 21)}

    def test_separate_engines_share_files(
        self, test_options: StoreOptions, metrics_registry: MetricsRegistry
    ) -> None:
        first = StoreEngine(options=test_options, metrics=metrics_registry)
        second = StoreEngine(options=test_options, metrics=metrics_registry)

        def fill(engine: StoreEngine, prefix: str) -> None:
            for i in range(15):
                engine(f"default.{prefix}{i}", i)

        workers = [
            threading.Thread(target=fill, args=(first, "a")),
            threading.Thread(target=fill, args=(second, "b")),
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(timeout=30)

        assert first("default:count") == 30
        assert sorted(second("default:keys")) == sorted(
            [f"a{i}" for i in range(15)] + [f"b{i}" for i in range(15)]
        )

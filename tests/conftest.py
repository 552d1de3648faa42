"""Pytest configuration and fixtures for flatdb tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
from prometheus_client import CollectorRegistry

from flatdb.adapters.outbound import FileStorage, InsertionOrderCache
from flatdb.application import StoreEngine, reset_engine
from flatdb.domain.services import MutationEngine, QueryEngine, RecordCodec
from flatdb.domain.value_objects import Database
from flatdb.infrastructure.config import StoreOptions
from flatdb.infrastructure.metrics import MetricsRegistry


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture
def test_options(temp_dir: Path) -> StoreOptions:
    """Provide store options rooted in the temporary directory."""
    return StoreOptions(path=temp_dir, create={"default", "other"}, errors=True)


@pytest.fixture
def engine(test_options: StoreOptions, metrics_registry: MetricsRegistry) -> StoreEngine:
    """Provide an engine that raises failures."""
    return StoreEngine(options=test_options, metrics=metrics_registry)


@pytest.fixture
def quiet_engine(test_options: StoreOptions, metrics_registry: MetricsRegistry) -> StoreEngine:
    """Provide an engine that only logs failures."""
    return StoreEngine(
        options=test_options.model_copy(update={"errors": False}),
        metrics=metrics_registry,
    )


@pytest.fixture
def codec() -> RecordCodec:
    return RecordCodec()


@pytest.fixture
def storage() -> FileStorage:
    return FileStorage()


@pytest.fixture
def database(temp_dir: Path, storage: FileStorage) -> Database:
    """Provide an empty database file."""
    db = Database.at(temp_dir, "default", ".dat")
    storage.create_empty(db.path)
    return db


@pytest.fixture
def cache(metrics_registry: MetricsRegistry) -> InsertionOrderCache:
    return InsertionOrderCache(metrics=metrics_registry)


@pytest.fixture
def queries(storage: FileStorage, codec: RecordCodec) -> QueryEngine:
    return QueryEngine(storage, codec)


@pytest.fixture
def mutations(
    storage: FileStorage,
    codec: RecordCodec,
    cache: InsertionOrderCache,
    metrics_registry: MetricsRegistry,
) -> MutationEngine:
    return MutationEngine(storage, codec, cache, metrics=metrics_registry)


@pytest.fixture(autouse=True)
def _reset_default_engine() -> Generator[None, None, None]:
    """Keep the process-wide engine from leaking between tests."""
    reset_engine()
    yield
    reset_engine()


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")

"""Store Engine - unified entry point for the flat-file store.

This module provides the StoreEngine facade that ties together address
parsing, the read cache, the query and mutation engines and the error
policy.

Usage:
    from flatdb import StoreEngine

    store = StoreEngine()
    store.configure({"path": "./cache", "create": ["default"], "errors": True})

    store("default.1", "test value")      # insert under key '1'
    store("default", "another value")     # auto key, returns '2'
    store("default.1")                    # 'test value'
    store("default:count")                # 2
    store("default.1:update", "changed")  # True

Error policy:
    Every failure is appended to the engine's error log. With the
    ``errors`` option set the failure is raised; otherwise the call
    returns the falsy ``FAILURE`` sentinel and the log can be read with
    the ``error`` and ``errors`` actions.
"""

from __future__ import annotations

import copy
import os
import threading
import time
from enum import Enum, auto
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from flatdb.adapters.outbound.file_storage import FileStorage
from flatdb.adapters.outbound.insertion_order_cache import InsertionOrderCache
from flatdb.application.result import FAILURE, Result
from flatdb.domain.exceptions import (
    ConfigurationError,
    DatabaseNotRegisteredError,
    InvalidAddressError,
    InvalidArgumentError,
    StorageIOError,
    StoreError,
)
from flatdb.domain.services import MutationEngine, QueryEngine, RecordCodec, parse_address
from flatdb.domain.value_objects import Action, Address, Database, Value
from flatdb.infrastructure.config import StoreOptions, get_config
from flatdb.infrastructure.logging import bind_operation, call_context, get_logger
from flatdb.infrastructure.metrics import MetricsRegistry, get_metrics
from flatdb.infrastructure.observability import setup_observability
from flatdb.infrastructure.tracing import record_failure, trace_span
from flatdb.ports.inbound.read_cache import DEFAULT_CAPACITY, ReadCache

logger = get_logger(__name__)

Handler = Callable[[Database, Address, Any], Any]


class EngineState(Enum):
    """Engine lifecycle.

    UNCONFIGURED ──configure()──> CONFIGURED ──first operation──> READY
    """

    UNCONFIGURED = auto()
    CONFIGURED = auto()
    READY = auto()


class StoreEngine:
    """Facade over the flat-file store.

    The engine owns the configuration, the read cache and the error log.
    Configuration is validated lazily on the first operation; once the
    engine is READY the storage location and format are fixed.

    Thread Safety:
        Configuration changes and the error log are guarded by a
        re-entrant lock. The cache locks itself and drops a fill that
        raced with an invalidation of the same key. File access is
        coordinated with advisory file locks.
    """

    # Options fixed once the engine is READY
    LOCKED_OPTIONS = frozenset({"path", "ext", "gzip"})

    def __init__(
        self,
        options: StoreOptions | None = None,
        cache: ReadCache | None = None,
        metrics: MetricsRegistry | None = None,
        codec: RecordCodec | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            options: Initial store options. The engine starts CONFIGURED
                when given, UNCONFIGURED otherwise.
            cache: Read cache (default: 30-entry insertion-order cache).
            metrics: Metrics registry (default: process-wide registry).
            codec: Record codec.
        """
        self._options = options or StoreOptions()
        self._state = EngineState.CONFIGURED if options is not None else EngineState.UNCONFIGURED
        self._metrics = metrics or get_metrics()
        self._cache = cache or InsertionOrderCache(DEFAULT_CAPACITY, metrics=self._metrics)
        self._codec = codec or RecordCodec()

        self._lock = threading.RLock()
        self._errors: list[str] = []

        # Built on initialization, once gzip is fixed
        self._storage: FileStorage | None = None
        self._queries: QueryEngine | None = None
        self._mutations: MutationEngine | None = None

        self._handlers: dict[Action, Handler] = {
            Action.COUNT: self._count,
            Action.DELETE: self._delete,
            Action.DROP: self._drop,
            Action.ERROR: self._last_error,
            Action.ERRORS: self._all_errors,
            Action.KEY: self._has_key,
            Action.KEYS: self._keys,
            Action.MAX: self._max,
            Action.SELECT: self._select,
            Action.UPDATE: self._update,
        }
        missing = set(Action) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for actions: {sorted(a.value for a in missing)}")

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def options(self) -> StoreOptions:
        return self._options

    @property
    def cache(self) -> ReadCache:
        return self._cache

    @property
    def errors(self) -> list[str]:
        """Copy of the error log, oldest first."""
        with self._lock:
            return list(self._errors)

    @property
    def last_error(self) -> str | None:
        with self._lock:
            return self._errors[-1] if self._errors else None

    def configure(self, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Merge recognized options and return the effective configuration.

        Unrecognized keys are ignored. Calling with no options is a pure
        getter.

        Raises:
            ConfigurationError: If an option has the wrong type, or if
                ``path``, ``ext`` or ``gzip`` would change after the engine
                became READY. Configuration failures are recorded in the
                error log and always raised.
        """
        with self._lock:
            recognized = {
                name: value
                for name, value in (options or {}).items()
                if name in StoreOptions.model_fields
            }
            if not recognized:
                return self._options.as_mapping()

            try:
                merged = StoreOptions.model_validate({**self._options.model_dump(), **recognized})
            except ValidationError as e:
                invalid = sorted({str(detail["loc"][0]) for detail in e.errors() if detail["loc"]})
                error = ConfigurationError(
                    f"Invalid value for option {', '.join(invalid)} "
                    f"({e.errors()[0]['msg']})"
                )
                self._record_error(error, "configure")
                raise error from e

            if self._state is EngineState.READY:
                changed = sorted(
                    name
                    for name in self.LOCKED_OPTIONS
                    if getattr(merged, name) != getattr(self._options, name)
                )
                if changed:
                    error = ConfigurationError(
                        f"Cannot change {', '.join(changed)} after the store is initialized"
                    )
                    self._record_error(error, "configure")
                    raise error

            self._options = merged
            if self._state is EngineState.UNCONFIGURED:
                self._state = EngineState.CONFIGURED

            logger.debug("store_configured", options=sorted(recognized))
            return merged.as_mapping()

    def execute(self, address: str, value: Value | Any = None) -> Result:
        """Run one call and return its explicit Result.

        Args:
            address: ``database[.key][:action]``.
            value: Value to insert or update, or the select window.

        Returns:
            Result holding the call's value or the StoreError it raised.
            The error is already recorded in the error log.
        """
        operation = "unknown"
        status = "success"
        started = time.perf_counter()

        label = str(address)
        with trace_span("flatdb.execute", {"flatdb.address": label}) as span, call_context(label):
            try:
                parsed = parse_address(address)
                operation = self._operation_name(parsed, value)
                span.set_attribute("flatdb.operation", operation)
                bind_operation(operation)
                return Result.success(self._dispatch(parsed, value))
            except StoreError as e:
                status = "error"
                record_failure(span, e)
                self._record_error(e, operation)
                return Result.failure(e)
            finally:
                self._metrics.operation_latency_seconds.labels(operation=operation).observe(
                    time.perf_counter() - started
                )
                self._metrics.operations_total.labels(operation=operation, status=status).inc()

    def __call__(self, address: str, value: Value | Any = None) -> Any:
        """Run one call applying the error policy.

        Returns:
            The call's value, or ``FAILURE`` when it failed and the
            ``errors`` option is off.

        Raises:
            StoreError: When the call failed and the ``errors`` option is on.
        """
        result = self.execute(address, value)
        if result.ok:
            return result.value
        if self._options.errors:
            raise result.error
        return FAILURE

    def resolve_database(self, name: str) -> Database:
        """Return the database ``name``, creating its empty file if absent.

        Raises:
            ConfigurationError: If the storage path is unusable.
            DatabaseNotRegisteredError: If ``name`` is not in ``create``.
            StorageIOError: If the file cannot be created.
        """
        self._initialize()
        options = self._options

        if name not in options.create:
            raise DatabaseNotRegisteredError(
                f'Database "{name}" has not been created '
                f"(use: configure({{'create': ['{name}']}}))"
            )

        db = Database.at(options.path, name, options.ext, gzip=options.gzip)
        if not self._storage.exists(db.path):
            try:
                self._storage.create_exclusive(db.path)
            except StorageIOError:
                # Another writer may have created it first
                if not self._storage.exists(db.path):
                    raise
            else:
                logger.info("database_created", database=name, path=str(db.path))
        return db

    def get_stats(self) -> dict[str, Any]:
        """Get engine statistics."""
        cache_stats = self._cache.get_stats()
        return {
            "state": self._state.name.lower(),
            "path": str(self._options.path) if self._options.path else None,
            "databases": sorted(self._options.create),
            "gzip": self._options.gzip,
            "errors_logged": len(self._errors),
            "cache": {
                "capacity": cache_stats.capacity,
                "entries": cache_stats.entries,
                "hits": cache_stats.hit_count,
                "misses": cache_stats.miss_count,
                "evictions": cache_stats.eviction_count,
                "hit_ratio": cache_stats.hit_ratio,
            },
        }

    def _initialize(self) -> None:
        """Validate the storage path once, then build the file engines."""
        if self._state is EngineState.READY:
            return

        with self._lock:
            if self._state is EngineState.READY:
                return

            path = self._options.path
            if path is None:
                raise ConfigurationError(
                    "Empty database storage path (use: configure({'path': './cache'}))"
                )
            if not path.is_dir():
                raise ConfigurationError(f'"{path}" is not a directory')
            if not os.access(path, os.W_OK | os.X_OK):
                raise ConfigurationError(f'"{path}" is not writable')

            self._storage = FileStorage(gzip=self._options.gzip)
            self._queries = QueryEngine(self._storage, self._codec)
            self._mutations = MutationEngine(
                self._storage, self._codec, self._cache, metrics=self._metrics
            )
            self._state = EngineState.READY

        logger.info(
            "store_ready",
            path=str(path),
            ext=self._options.ext,
            gzip=self._options.gzip,
        )

    def _dispatch(self, address: Address, value: Any) -> Any:
        action = address.action

        if action is not None and action.reads_error_log:
            return self._handlers[action](None, address, value)

        db = self.resolve_database(address.database)

        if action is not None:
            if action.requires_key and address.key is None:
                raise InvalidAddressError(
                    f'Action "{action.value}" requires a key '
                    f'(use: "{address.database}.<key>:{action.value}")'
                )
            return self._handlers[action](db, address, value)

        if value is not None:
            return self._mutations.insert(db, address.key, value)

        if address.key is None:
            raise InvalidAddressError(f'Address "{address}" names no key to read')
        return self._get(db, address.key)

    def _get(self, db: Database, key: str) -> Value:
        qualified = db.qualify(key)
        hit, cached = self._cache.lookup(qualified)
        if hit:
            return copy.deepcopy(cached)

        # A write landing between the read and the store bumps the generation
        generation = self._cache.generation
        value = self._queries.find(db, key)
        if not self._cache.store(qualified, value, generation=generation):
            logger.debug("cache_fill_skipped", key=qualified)
        return copy.deepcopy(value)

    # Action handlers

    def _count(self, db: Database, address: Address, value: Any) -> int:
        return self._queries.count(db)

    def _delete(self, db: Database, address: Address, value: Any) -> bool:
        return self._mutations.delete(db, address.key)

    def _drop(self, db: Database, address: Address, value: Any) -> bool:
        return self._mutations.drop(db)

    def _last_error(self, db: Database | None, address: Address, value: Any) -> str | None:
        return self.last_error

    def _all_errors(self, db: Database | None, address: Address, value: Any) -> list[str]:
        return self.errors

    def _has_key(self, db: Database, address: Address, value: Any) -> bool:
        return self._queries.has_key(db, address.key)

    def _keys(self, db: Database, address: Address, value: Any) -> list[str]:
        return self._queries.keys(db)

    def _max(self, db: Database, address: Address, value: Any) -> int:
        return self._queries.max_key(db)

    def _select(self, db: Database, address: Address, value: Any) -> dict[str, Value]:
        offset, limit = self._select_window(value)
        return self._queries.select(db, offset=offset, limit=limit)

    def _update(self, db: Database, address: Address, value: Any) -> bool:
        return self._mutations.update(db, address.key, value)

    @staticmethod
    def _select_window(value: Any) -> tuple[int, int | None]:
        """Read ``None``, ``limit``, ``[limit]`` or ``[offset, limit]``."""
        if value is None:
            return 0, None

        def is_count(item: Any) -> bool:
            return isinstance(item, int) and not isinstance(item, bool) and item >= 0

        if is_count(value):
            return 0, value
        if isinstance(value, (list, tuple)) and len(value) in (1, 2) and all(
            is_count(item) for item in value
        ):
            if len(value) == 1:
                return 0, value[0]
            return value[0], value[1]

        raise InvalidArgumentError(
            f"Invalid select window {value!r} (use: limit, [limit] or [offset, limit])"
        )

    @staticmethod
    def _operation_name(address: Address, value: Any) -> str:
        if address.action is not None:
            return address.action.value
        return "insert" if value is not None else "get"

    def _record_error(self, error: StoreError, operation: str) -> None:
        with self._lock:
            self._errors.append(error.message)
        self._metrics.errors_total.labels(kind=error.kind.value).inc()
        logger.warning(
            "operation_failed",
            operation=operation,
            kind=error.kind.value,
            error=error.message,
        )


# Process-wide engine
_engine: StoreEngine | None = None
_engine_lock = threading.Lock()


def get_engine() -> StoreEngine:
    """Get the process-wide engine, seeded from ``FLATDB_*`` settings.

    Creating it also applies the observability settings, once per process.
    """
    global _engine
    with _engine_lock:
        if _engine is None:
            config = get_config()
            setup_observability(config.observability)
            settings = config.store
            # Without any FLATDB_STORE__* variable the engine starts unconfigured
            _engine = StoreEngine(options=settings if settings.model_fields_set else None)
        return _engine


def reset_engine() -> None:
    """Reset the process-wide engine (useful for testing)."""
    global _engine
    with _engine_lock:
        _engine = None


def configure(options: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Configure the process-wide engine."""
    return get_engine().configure(options)


def store(address: str, value: Value | Any = None) -> Any:
    """Run one call on the process-wide engine."""
    return get_engine()(address, value)

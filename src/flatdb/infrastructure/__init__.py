"""Infrastructure layer - cross-cutting concerns."""

from flatdb.infrastructure.config import (
    Config,
    ObservabilityConfig,
    StoreOptions,
    get_config,
)
from flatdb.infrastructure.logging import setup_logging, get_logger, call_context, bind_operation
from flatdb.infrastructure.metrics import setup_metrics, get_metrics, MetricsRegistry
from flatdb.infrastructure.tracing import setup_tracing, get_tracer, trace_span, record_failure
from flatdb.infrastructure.observability import setup_observability, applied_config

__all__ = [
    "Config",
    "ObservabilityConfig",
    "StoreOptions",
    "get_config",
    "setup_logging",
    "get_logger",
    "call_context",
    "bind_operation",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "get_tracer",
    "trace_span",
    "record_failure",
    "setup_observability",
    "applied_config",
]

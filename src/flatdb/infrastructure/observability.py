"""Applies ``ObservabilityConfig`` to logging, tracing and metrics."""

from __future__ import annotations

import threading

from flatdb.infrastructure.config import ObservabilityConfig
from flatdb.infrastructure.logging import get_logger, setup_logging
from flatdb.infrastructure.metrics import setup_metrics
from flatdb.infrastructure.tracing import setup_tracing

logger = get_logger(__name__)

_lock = threading.Lock()
_applied: ObservabilityConfig | None = None


def setup_observability(
    config: ObservabilityConfig,
    serve_metrics: bool = False,
) -> bool:
    """Configure logging and tracing from ``config``, once per process.

    Tracing exports only when ``otel_endpoint`` is set. The metrics HTTP
    endpoint is started only on request, since it binds a port.

    Returns:
        True if this call applied the configuration, False if a
        configuration was already applied.
    """
    global _applied
    with _lock:
        if _applied is not None:
            return False

        setup_logging(level=config.log_level, log_format=config.log_format)
        if config.otel_endpoint:
            setup_tracing(
                service_name=config.otel_service_name,
                otlp_endpoint=config.otel_endpoint,
            )
        if serve_metrics:
            setup_metrics(port=config.metrics_port)

        _applied = config

    logger.info(
        "observability_configured",
        log_level=config.log_level,
        tracing=bool(config.otel_endpoint),
        metrics_port=config.metrics_port if serve_metrics else None,
    )
    return True


def applied_config() -> ObservabilityConfig | None:
    """Return the configuration applied so far, if any."""
    return _applied

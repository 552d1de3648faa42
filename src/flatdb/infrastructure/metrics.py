"""Prometheus metrics for the flat-file store."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
    REGISTRY,
    CollectorRegistry,
)


class MetricsRegistry:
    """Registry of all store metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Operation metrics
        self.operations_total = Counter(
            "flatdb_operations_total",
            "Total number of store operations",
            ["operation", "status"],  # status: success, error
            registry=self._registry,
        )

        self.operation_latency_seconds = Histogram(
            "flatdb_operation_latency_seconds",
            "Store operation latency in seconds",
            ["operation"],
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
            registry=self._registry,
        )

        self.errors_total = Counter(
            "flatdb_errors_total",
            "Total failures recorded in the error log",
            ["kind"],
            registry=self._registry,
        )

        # Read cache metrics
        self.cache_hits_total = Counter(
            "flatdb_cache_hits_total",
            "Total read cache hits",
            registry=self._registry,
        )

        self.cache_misses_total = Counter(
            "flatdb_cache_misses_total",
            "Total read cache misses",
            registry=self._registry,
        )

        self.cache_evictions_total = Counter(
            "flatdb_cache_evictions_total",
            "Total entries trimmed from the read cache",
            registry=self._registry,
        )

        self.cache_entries = Gauge(
            "flatdb_cache_entries",
            "Number of entries currently held by the read cache",
            registry=self._registry,
        )

        # Replace protocol metrics
        self.replaces_total = Counter(
            "flatdb_replaces_total",
            "Total copy-filter-rename operations",
            ["action", "outcome"],  # outcome: renamed, not_found, failed
            registry=self._registry,
        )

        self.orphans_reclaimed_total = Counter(
            "flatdb_orphan_temp_files_reclaimed_total",
            "Temp files left by failed replaces and reclaimed",
            registry=self._registry,
        )

        self.info = Info(
            "flatdb",
            "Flat-file store information",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        """The Prometheus registry the metrics are registered with."""
        return self._registry


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8001, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up Prometheus metrics server.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    _metrics = MetricsRegistry(registry)

    from flatdb import __version__
    _metrics.info.info({
        "version": __version__,
    })

    start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics

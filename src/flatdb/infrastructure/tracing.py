"""OpenTelemetry tracing for store calls.

Each engine call runs in one ``flatdb.execute`` span. Failures are
handled inside the engine rather than propagated, so the engine marks
the span itself with ``record_failure``.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Status, StatusCode

from flatdb.domain.exceptions import StoreError

_tracer: trace.Tracer | None = None
_provider: TracerProvider | None = None


def setup_tracing(
    service_name: str = "flatdb",
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> trace.Tracer:
    """
    Set up OpenTelemetry tracing.

    The tracer provider is installed once per process; later calls only
    add exporters to it.

    Args:
        service_name: Name of the service for tracing
        otlp_endpoint: OTLP collector endpoint (e.g., "http://localhost:4317")
        console_export: Whether to also export to console (for debugging)

    Returns:
        Configured tracer instance
    """
    global _tracer, _provider

    from flatdb import __version__

    if _provider is None:
        _provider = TracerProvider(
            resource=Resource.create(
                {
                    "service.name": service_name,
                    "service.version": __version__,
                }
            )
        )
        trace.set_tracer_provider(_provider)

    if otlp_endpoint:
        _provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
    if console_export:
        _provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    _tracer = _provider.get_tracer(service_name, __version__)
    return _tracer


def get_tracer() -> trace.Tracer:
    """Get the global tracer instance."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("flatdb")
    return _tracer


@contextmanager
def trace_span(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """
    Context manager for creating a trace span.

    Args:
        name: Name of the span
        attributes: Optional attributes to add to the span

    Yields:
        The created span
    """
    with get_tracer().start_as_current_span(name, attributes=attributes) as span:
        yield span


def record_failure(span: trace.Span, error: StoreError) -> None:
    """Mark ``span`` as failed with the store error's kind and message."""
    span.set_attribute("flatdb.error_kind", error.kind.value)
    span.set_status(Status(StatusCode.ERROR, error.message))

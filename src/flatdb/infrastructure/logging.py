"""Structured logging for the store.

Store components log through ``get_logger``. Each engine call binds its
address and operation with ``call_context`` so every event emitted while
serving the call carries them.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Any, Generator, TextIO

import structlog
from structlog.types import Processor


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    stream: TextIO | None = None,
) -> None:
    """
    Set up structured logging with structlog.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
        stream: Output stream (default: stderr, keeping stdout for callers)
    """
    output = stream or sys.stderr
    numeric_level = getattr(logging, level.upper())

    logging.basicConfig(format="%(message)s", stream=output, level=numeric_level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a bound logger instance.

    Args:
        name: Logger name (module name typically)
        **initial_context: Initial context to bind to the logger

    Returns:
        A bound structlog logger
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


@contextmanager
def call_context(address: str, operation: str = "unknown") -> Generator[None, None, None]:
    """Bind a call's address and operation to all log events it emits.

    Both keys are unbound on exit, including an operation rebound with
    ``bind_operation`` inside the block.
    """
    with structlog.contextvars.bound_contextvars(address=address, operation=operation):
        yield


def bind_operation(operation: str) -> None:
    """Add the resolved operation to the current call's log context."""
    structlog.contextvars.bind_contextvars(operation=operation)

"""Structured logging for crucible-analysis."""

from __future__ import annotations

import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, TextIO

import structlog

if TYPE_CHECKING:
    from structlog.typing import EventDict, WrappedLogger

    from crucible_analysis.config import Settings

# Correlates every log line emitted while one analysis is in flight,
# including the lines of a fallback provider.
analysis_id_ctx: ContextVar[str] = ContextVar("analysis_id", default="")


def add_analysis_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add analysis_id to log event if set in context."""
    analysis_id = analysis_id_ctx.get()
    if analysis_id:
        event_dict["analysis_id"] = analysis_id
    return event_dict


@contextmanager
def analysis_scope(analysis_id: str | None = None) -> Iterator[str]:
    """
    Tag log events emitted inside the block with an analysis id.

    Nested scopes reuse the outer id so that an orchestrator and the
    providers it wraps share one correlation id.
    """
    current = analysis_id_ctx.get()
    if current and analysis_id is None:
        yield current
        return

    token = analysis_id_ctx.set(analysis_id or uuid.uuid4().hex[:12])
    try:
        yield analysis_id_ctx.get()
    finally:
        analysis_id_ctx.reset(token)


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = True,
    stream: TextIO | None = None,
) -> None:
    """
    Configure structured logging with structlog.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, output JSON lines; otherwise, console format.
        stream: Output stream. Defaults to stderr so command output on stdout
            stays machine-readable.
    """
    if stream is None:
        stream = sys.stderr

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        add_analysis_id,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(__import__("logging"), log_level.upper(), 20)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,  # Disable caching for tests
    )


def configure_logging_from_settings(settings: Settings, stream: TextIO | None = None) -> None:
    """Configure logging from the LOG_LEVEL / LOG_JSON_FORMAT settings."""
    configure_logging(
        log_level=settings.log_level,
        json_format=settings.log_json_format,
        stream=stream,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a logger that follows the current structlog configuration.

    The logger is resolved lazily, so module-level loggers pick up
    configure_logging() calls made after import.

    Args:
        name: Logger name (typically module name).

    Returns:
        Lazy structlog logger with ``logger_name=name`` as initial context.
    """
    # bind() would build the logger eagerly; initial values keep it lazy.
    # "logger" itself is reserved by structlog.wrap_logger's signature.
    return structlog.get_logger(name, logger_name=name)

"""
Structured logging setup.

Every module logs through the shared ``logger`` with snake_case event names and
keyword context, e.g. ``logger.info("user_registered", user_id=user.id)``.
The request correlation ID is carried in a context variable and merged into
every log line emitted while the request is being handled.
"""
from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Optional

import structlog

_LOG_LEVEL_MAP = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def configure_logging(level: str = "INFO", log_format: str = "console") -> None:
    """Configure structlog processors, level filter and renderer."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if log_format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        # ConsoleRenderer formats tracebacks itself
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            _LOG_LEVEL_MAP.get(level.lower(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(**initial_context: Any) -> structlog.typing.FilteringBoundLogger:
    """Return a logger bound to the given context."""
    return structlog.get_logger().bind(**initial_context)


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)
    structlog.contextvars.unbind_contextvars("correlation_id")


logger = structlog.get_logger()

"""Structured logging for command handlers and their collaborators.

structlog renders every line.  Records from plain ``logging`` loggers
(repositories, the event bus, the transition functions) go through the
same chain via ``ProcessorFormatter``, so they pick up the per-command
context bound by :func:`command_context` as well.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from order_shipping.core.errors import ConfigError

_HANDLER_NAME = "order_shipping"


def _renderer(format: str) -> Any:
    if format == "json":
        return structlog.processors.JSONRenderer(default=str)
    if format == "console":
        return structlog.dev.ConsoleRenderer()
    raise ConfigError(f"Unknown log format {format!r} (expected 'json' or 'console')")


def setup_logging(
    level: str = "INFO",
    format: str = "json",
) -> None:
    """Configure structlog and the root ``logging`` handler.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format: "json" for production, "console" for development.

    Raises:
        ConfigError: *format* is neither "json" nor "console".
    """
    renderer = _renderer(format)
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)


@contextmanager
def command_context(command: str, correlation_id: str, **extra: Any) -> Iterator[None]:
    """Bind *command* and *correlation_id* for every line logged inside.

    The bindings are undone on exit, so nothing carries over to the next
    command handled in the same task.
    """
    with structlog.contextvars.bound_contextvars(
        command=command, correlation_id=correlation_id, **extra
    ):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for a module."""
    return structlog.get_logger(name)

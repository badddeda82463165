"""Plumbing shared by the command handlers.

``guard`` and ``attempt`` are the only places raw collaborator exceptions
are caught.  ``guard`` lifts an async collaborator call into an
``AsyncResult``; ``attempt`` wraps a synchronous one.  Either turns a
fault into a ``repository_error`` that keeps the exception as ``cause``.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

import structlog

from order_shipping.core.clock import DEFAULT_CLOCK, IClock
from order_shipping.core.ids import new_id
from order_shipping.core.result import AsyncResult, Err, Ok, Result
from order_shipping.domain.failures import WorkflowFailure, repository_error
from order_shipping.observability.logger import command_context, get_logger

T = TypeVar("T")

logger = get_logger(__name__)


def guard(
    factory: Callable[[], Awaitable[T]],
    message: str,
) -> AsyncResult[T, WorkflowFailure]:
    """Lift a collaborator call; any exception becomes ``repository_error``."""
    return AsyncResult.from_awaitable(
        factory, lambda exc: repository_error(message, exc)
    )


def attempt(fn: Callable[[], T], message: str) -> Result[T, WorkflowFailure]:
    """Synchronous counterpart of :func:`guard` (e.g. building a snapshot)."""
    try:
        return Ok(fn())
    except Exception as exc:
        return Err(repository_error(message, exc))


def allocate_id(next_id: Callable[[], Any], what: str) -> Result[str, WorkflowFailure]:
    """Call a repository's ``next_id``.

    ``uuid.UUID`` values are accepted and rendered as strings.  Anything
    else the repository hands back is checked when the snapshot is built.
    """
    return attempt(next_id, f"failed to allocate {what}").map(
        lambda raw: str(raw) if isinstance(raw, uuid.UUID) else raw
    )


def require(
    value: T | None,
    failure: Callable[[], WorkflowFailure],
) -> Result[T, WorkflowFailure]:
    """``Ok(value)`` unless *value* is ``None``."""
    if value is None:
        return Err(failure())
    return Ok(value)


class CommandHandler:
    """Base for handlers: owns the clock and per-invocation logging."""

    command_name = "command"

    def __init__(self, *, clock: IClock = DEFAULT_CLOCK) -> None:
        self._clock = clock

    @contextmanager
    def _invocation(self) -> Iterator[str]:
        """Scope a fresh correlation id to one handler call."""
        correlation_id = new_id()
        with command_context(self.command_name, correlation_id):
            yield correlation_id

    def _rejected(self, parsed: Err) -> Err:
        logger.warning("command_rejected", reason=parsed.error.message)
        return parsed

    async def _finish(
        self,
        pipeline: AsyncResult[T, WorkflowFailure],
        **context: Any,
    ) -> Result[T, WorkflowFailure]:
        with structlog.contextvars.bound_contextvars(**context):
            outcome = await pipeline
            if isinstance(outcome, Err):
                failure = outcome.error
                logger.warning(
                    "command_failed",
                    kind=failure.kind.value,
                    reason=failure.message,
                    cause=repr(failure.cause) if failure.cause is not None else None,
                )
            else:
                logger.info("command_succeeded")
        return outcome

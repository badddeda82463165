"""Typed failure values shared by every layer.

A ``WorkflowFailure`` is the ``E`` in ``Result[T, E]`` throughout the
package.  ``kind`` is the closed error taxonomy; ``cause`` is only ever
populated for ``repository_error`` and holds the original exception for
logging.  Domain logic never inspects ``cause``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from order_shipping.core.enums import ErrorKind


@dataclass(frozen=True)
class WorkflowFailure:
    kind: ErrorKind
    message: str
    cause: Any = None

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


def validation_error(message: str) -> WorkflowFailure:
    return WorkflowFailure(ErrorKind.VALIDATION_ERROR, message)


def business_rule_violation(message: str) -> WorkflowFailure:
    return WorkflowFailure(ErrorKind.BUSINESS_RULE_VIOLATION, message)


def not_found(message: str) -> WorkflowFailure:
    return WorkflowFailure(ErrorKind.NOT_FOUND, message)


def repository_error(message: str, cause: Any = None) -> WorkflowFailure:
    return WorkflowFailure(ErrorKind.REPOSITORY_ERROR, message, cause)


def first_error_message(exc: ValidationError, default: str = "Invalid value") -> str:
    """Render the first pydantic error as ``"<loc>: <msg>"``.

    Custom validator messages are raised as ``ValueError`` and show up
    with a ``"Value error, "`` prefix, which is stripped here.
    """
    errors = exc.errors()
    if not errors:
        return default
    first = errors[0]
    msg = str(first.get("msg") or default)
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {msg}" if loc else msg

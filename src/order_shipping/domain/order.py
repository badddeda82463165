"""Order aggregate schema and validator.

State machine
-------------
    DRAFT -> PLACED -> PAID
    DRAFT | PLACED -> CANCELLED

PAID and CANCELLED are terminal.  The status field is a closed tagged
union: each tag carries exactly its own payload (``placed_at``,
``paid_at``, ``cancelled_at`` + ``reason``) and nothing else.

Invariants checked on every snapshot
------------------------------------
*  ``total_amount`` equals the sum of ``unit_price * quantity`` over lines.
*  ``product_id`` is unique within ``lines``.
*  Only DRAFT or CANCELLED orders may have no lines.
*  ``updated_at`` is never before ``created_at``.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Annotated, Any, Literal, Union

from pydantic import AwareDatetime, BaseModel, Field, ValidationError, model_validator

from order_shipping.core.enums import OrderStatusType
from order_shipping.core.result import Err, Ok, Result
from order_shipping.domain.failures import (
    WorkflowFailure,
    first_error_message,
    validation_error,
)
from order_shipping.domain.value_objects import Identifier, OrderLine, Price

# ---------------------------------------------------------------------------
# Valid state transitions
# ---------------------------------------------------------------------------

_VALID_TRANSITIONS: dict[OrderStatusType, frozenset[OrderStatusType]] = {
    OrderStatusType.DRAFT: frozenset(
        {OrderStatusType.PLACED, OrderStatusType.CANCELLED}
    ),
    OrderStatusType.PLACED: frozenset(
        {OrderStatusType.PAID, OrderStatusType.CANCELLED}
    ),
    # Terminal states -- no further transitions allowed.
    OrderStatusType.PAID: frozenset(),
    OrderStatusType.CANCELLED: frozenset(),
}

TERMINAL_ORDER_STATUSES: frozenset[OrderStatusType] = frozenset(
    status for status, targets in _VALID_TRANSITIONS.items() if not targets
)


def can_transition(current: str, target: str) -> bool:
    """Return ``True`` if an order may move from *current* to *target*."""
    return OrderStatusType(target) in _VALID_TRANSITIONS[OrderStatusType(current)]


# ---------------------------------------------------------------------------
# Status variants
# ---------------------------------------------------------------------------

_STRICT = {"frozen": True, "extra": "forbid"}


class Draft(BaseModel):
    model_config = _STRICT

    type: Literal["draft"] = "draft"


class Placed(BaseModel):
    model_config = _STRICT

    type: Literal["placed"] = "placed"
    placed_at: AwareDatetime


class Paid(BaseModel):
    model_config = _STRICT

    type: Literal["paid"] = "paid"
    paid_at: AwareDatetime


class Cancelled(BaseModel):
    model_config = _STRICT

    type: Literal["cancelled"] = "cancelled"
    cancelled_at: AwareDatetime
    reason: str = Field(min_length=1, max_length=500)


OrderStatus = Annotated[
    Union[Draft, Placed, Paid, Cancelled],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Aggregate root
# ---------------------------------------------------------------------------

class Order(BaseModel):
    """Immutable order snapshot.  Build new snapshots, never mutate."""

    model_config = _STRICT

    id: Identifier
    customer_id: Identifier
    lines: tuple[OrderLine, ...] = ()
    status: OrderStatus
    total_amount: Price
    created_at: AwareDatetime
    updated_at: AwareDatetime

    @model_validator(mode="after")
    def check_invariants(self) -> Order:
        product_ids = [line.product_id for line in self.lines]
        if len(set(product_ids)) != len(product_ids):
            raise ValueError("product_id must be unique within an order")

        expected = sum((line.subtotal for line in self.lines), Decimal("0"))
        if self.total_amount != expected:
            raise ValueError(
                f"total_amount {self.total_amount} does not match "
                f"sum of lines {expected}"
            )

        if not self.lines and self.status.type not in (
            OrderStatusType.DRAFT,
            OrderStatusType.CANCELLED,
        ):
            raise ValueError(f"a {self.status.type} order must have lines")

        if self.updated_at < self.created_at:
            raise ValueError("updated_at cannot be before created_at")
        return self

    @property
    def status_type(self) -> OrderStatusType:
        return OrderStatusType(self.status.type)

    @property
    def is_terminal(self) -> bool:
        return self.status_type in TERMINAL_ORDER_STATUSES

    def has_product(self, product_id: str) -> bool:
        return any(line.product_id == product_id for line in self.lines)


def validate_order(candidate: Order | Mapping[str, Any]) -> Result[Order, WorkflowFailure]:
    """Accept a candidate snapshot or report the first violated constraint."""
    data = candidate.model_dump() if isinstance(candidate, Order) else candidate
    try:
        return Ok(Order.model_validate(data))
    except ValidationError as exc:
        return Err(validation_error(first_error_message(exc, "invalid order")))

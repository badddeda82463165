"""Pure state-transition functions for the Order aggregate.

Each function takes the current snapshot and returns ``Ok(new_snapshot)``
or ``Err(WorkflowFailure)``.  The input snapshot is never modified.
Every successful result has been re-validated through ``validate_order``.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from order_shipping.core.clock import DEFAULT_CLOCK, IClock
from order_shipping.core.enums import OrderStatusType
from order_shipping.core.result import Err, Result
from order_shipping.domain.failures import WorkflowFailure, business_rule_violation
from order_shipping.domain.order import Order, can_transition, validate_order
from order_shipping.domain.value_objects import (
    CustomerId,
    OrderId,
    OrderLine,
    create_order_id,
)

logger = logging.getLogger(__name__)


def _next_snapshot(order: Order, **changes: Any) -> Result[Order, WorkflowFailure]:
    """Build and validate the snapshot that follows *order*."""
    outcome = validate_order({**order.model_dump(), **changes})
    if isinstance(outcome, Err):
        # The schema disagreeing with a transition is a logic defect.
        logger.warning(
            "Order %s rejected by schema after transition: %s",
            order.id,
            outcome.error.message,
        )
    return outcome


def _total_of(lines: tuple[OrderLine, ...]) -> Decimal:
    return sum((line.subtotal for line in lines), Decimal("0"))


def create_order(
    customer_id: CustomerId | str,
    *,
    order_id: OrderId | str | None = None,
    clock: IClock = DEFAULT_CLOCK,
) -> Order:
    """Start a new DRAFT order with no lines and a zero total."""
    now = clock.now()
    return Order(
        id=order_id or create_order_id(),
        customer_id=customer_id,
        lines=(),
        status={"type": OrderStatusType.DRAFT.value},
        total_amount=Decimal("0"),
        created_at=now,
        updated_at=now,
    )


def add_order_line(
    order: Order,
    line: OrderLine,
    *,
    clock: IClock = DEFAULT_CLOCK,
) -> Result[Order, WorkflowFailure]:
    """Append *line* and recompute the total.  DRAFT orders only."""
    if order.status_type != OrderStatusType.DRAFT:
        return Err(
            business_rule_violation(
                f"lines can only be added to draft orders (order is {order.status.type})"
            )
        )
    if order.has_product(line.product_id):
        return Err(
            business_rule_violation(
                f"product {line.product_name} is already on the order"
            )
        )

    lines = (*order.lines, line)
    return _next_snapshot(
        order,
        lines=lines,
        total_amount=_total_of(lines),
        updated_at=clock.now(),
    )


def place_order(
    order: Order,
    *,
    clock: IClock = DEFAULT_CLOCK,
) -> Result[Order, WorkflowFailure]:
    """DRAFT -> PLACED.  An order without lines cannot be placed."""
    if not can_transition(order.status.type, OrderStatusType.PLACED):
        return Err(
            business_rule_violation(
                f"only draft orders can be placed (order is {order.status.type})"
            )
        )
    if not order.lines:
        return Err(business_rule_violation("an order with no lines cannot be placed"))

    now = clock.now()
    return _next_snapshot(
        order,
        status={"type": OrderStatusType.PLACED.value, "placed_at": now},
        updated_at=now,
    )


def mark_order_paid(
    order: Order,
    *,
    clock: IClock = DEFAULT_CLOCK,
) -> Result[Order, WorkflowFailure]:
    """PLACED -> PAID."""
    if not can_transition(order.status.type, OrderStatusType.PAID):
        return Err(
            business_rule_violation(
                f"only placed orders can be marked as paid (order is {order.status.type})"
            )
        )

    now = clock.now()
    return _next_snapshot(
        order,
        status={"type": OrderStatusType.PAID.value, "paid_at": now},
        updated_at=now,
    )


def cancel_order(
    order: Order,
    reason: str,
    *,
    clock: IClock = DEFAULT_CLOCK,
) -> Result[Order, WorkflowFailure]:
    """DRAFT | PLACED -> CANCELLED with a non-empty *reason*."""
    if not can_transition(order.status.type, OrderStatusType.CANCELLED):
        return Err(
            business_rule_violation(
                f"a {order.status.type} order cannot be cancelled"
            )
        )

    now = clock.now()
    return _next_snapshot(
        order,
        status={
            "type": OrderStatusType.CANCELLED.value,
            "cancelled_at": now,
            "reason": reason,
        },
        updated_at=now,
    )

"""Pure state-transition functions for the Shipping aggregate.

Each transition accepts exactly the prior status named in its
docstring and rejects all others with ``business_rule_violation``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from order_shipping.core.clock import DEFAULT_CLOCK, IClock
from order_shipping.core.enums import ShippingMethod, ShippingStatusType
from order_shipping.core.result import Err, Result
from order_shipping.domain.failures import WorkflowFailure, business_rule_violation
from order_shipping.domain.shipping import (
    Shipping,
    can_transition,
    estimate_delivery_date,
    validate_shipping,
)
from order_shipping.domain.value_objects import (
    Address,
    OrderId,
    ShippingId,
    create_shipping_id,
    create_tracking_number,
)

logger = logging.getLogger(__name__)


def _next_snapshot(shipping: Shipping, **changes: Any) -> Result[Shipping, WorkflowFailure]:
    outcome = validate_shipping({**shipping.model_dump(), **changes})
    if isinstance(outcome, Err):
        logger.warning(
            "Shipping %s rejected by schema after transition: %s",
            shipping.id,
            outcome.error.message,
        )
    return outcome


def _wrong_status(shipping: Shipping, action: str, required: ShippingStatusType) -> Err:
    return Err(
        business_rule_violation(
            f"only {required.value} shipments can be {action} "
            f"(shipment is {shipping.status.type})"
        )
    )


def create_shipping(
    order_id: OrderId | str,
    shipping_address: Address,
    method: ShippingMethod | str,
    *,
    shipping_id: ShippingId | str | None = None,
    lead_days: Mapping[ShippingMethod, int] | None = None,
    clock: IClock = DEFAULT_CLOCK,
) -> Shipping:
    """Start a PENDING shipment with its estimated delivery date."""
    now = clock.now()
    return Shipping(
        id=shipping_id or create_shipping_id(),
        order_id=order_id,
        shipping_address=shipping_address,
        method=method,
        status={"type": ShippingStatusType.PENDING.value},
        estimated_delivery_date=estimate_delivery_date(method, now, lead_days),
        created_at=now,
        updated_at=now,
    )


def start_preparation(
    shipping: Shipping,
    *,
    clock: IClock = DEFAULT_CLOCK,
) -> Result[Shipping, WorkflowFailure]:
    """PENDING -> PREPARING."""
    if not can_transition(shipping.status.type, ShippingStatusType.PREPARING):
        return _wrong_status(shipping, "prepared", ShippingStatusType.PENDING)

    return _next_snapshot(
        shipping,
        status={"type": ShippingStatusType.PREPARING.value},
        updated_at=clock.now(),
    )


def ship(
    shipping: Shipping,
    *,
    tracking_number: str | None = None,
    clock: IClock = DEFAULT_CLOCK,
) -> Result[Shipping, WorkflowFailure]:
    """PREPARING -> SHIPPED.

    *tracking_number* comes from the carrier; when omitted a local one is
    generated with ``create_tracking_number``.
    """
    if not can_transition(shipping.status.type, ShippingStatusType.SHIPPED):
        return _wrong_status(shipping, "shipped", ShippingStatusType.PREPARING)

    if tracking_number is None:
        tracking_number = create_tracking_number()
    now = clock.now()
    return _next_snapshot(
        shipping,
        status={
            "type": ShippingStatusType.SHIPPED.value,
            "shipped_at": now,
            "tracking_number": tracking_number,
        },
        updated_at=now,
    )


def deliver(
    shipping: Shipping,
    *,
    clock: IClock = DEFAULT_CLOCK,
) -> Result[Shipping, WorkflowFailure]:
    """SHIPPED -> DELIVERED."""
    if not can_transition(shipping.status.type, ShippingStatusType.DELIVERED):
        return _wrong_status(shipping, "delivered", ShippingStatusType.SHIPPED)

    now = clock.now()
    return _next_snapshot(
        shipping,
        status={"type": ShippingStatusType.DELIVERED.value, "delivered_at": now},
        updated_at=now,
    )


def fail_shipping(
    shipping: Shipping,
    reason: str,
    *,
    clock: IClock = DEFAULT_CLOCK,
) -> Result[Shipping, WorkflowFailure]:
    """PENDING | PREPARING | SHIPPED -> FAILED with a non-empty *reason*."""
    if not can_transition(shipping.status.type, ShippingStatusType.FAILED):
        return Err(
            business_rule_violation(
                f"a {shipping.status.type} shipment cannot be marked as failed"
            )
        )

    now = clock.now()
    return _next_snapshot(
        shipping,
        status={
            "type": ShippingStatusType.FAILED.value,
            "failed_at": now,
            "reason": reason,
        },
        updated_at=now,
    )

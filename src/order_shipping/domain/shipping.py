"""Shipping aggregate schema and validator.

State machine
-------------
    PENDING -> PREPARING -> SHIPPED -> DELIVERED
    PENDING | PREPARING | SHIPPED -> FAILED

DELIVERED and FAILED are terminal.  One shipment exists per order.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Annotated, Any, Literal, Union

from pydantic import AwareDatetime, BaseModel, Field, ValidationError, model_validator

from order_shipping.core.config import DELIVERY_LEAD_DAYS
from order_shipping.core.enums import ShippingMethod, ShippingStatusType
from order_shipping.core.result import Err, Ok, Result
from order_shipping.domain.failures import (
    WorkflowFailure,
    first_error_message,
    validation_error,
)
from order_shipping.domain.value_objects import (
    Address,
    Identifier,
    TrackingNumberField,
)

_VALID_TRANSITIONS: dict[ShippingStatusType, frozenset[ShippingStatusType]] = {
    ShippingStatusType.PENDING: frozenset(
        {ShippingStatusType.PREPARING, ShippingStatusType.FAILED}
    ),
    ShippingStatusType.PREPARING: frozenset(
        {ShippingStatusType.SHIPPED, ShippingStatusType.FAILED}
    ),
    ShippingStatusType.SHIPPED: frozenset(
        {ShippingStatusType.DELIVERED, ShippingStatusType.FAILED}
    ),
    ShippingStatusType.DELIVERED: frozenset(),
    ShippingStatusType.FAILED: frozenset(),
}

TERMINAL_SHIPPING_STATUSES: frozenset[ShippingStatusType] = frozenset(
    status for status, targets in _VALID_TRANSITIONS.items() if not targets
)


def can_transition(current: str, target: str) -> bool:
    """Return ``True`` if a shipment may move from *current* to *target*."""
    return ShippingStatusType(target) in _VALID_TRANSITIONS[ShippingStatusType(current)]


def estimate_delivery_date(
    method: ShippingMethod | str,
    created_at: datetime,
    lead_days: Mapping[ShippingMethod, int] | None = None,
) -> datetime:
    """Return ``created_at`` plus the lead time of *method*."""
    table = lead_days or DELIVERY_LEAD_DAYS
    return created_at + timedelta(days=table[ShippingMethod(method)])


# ---------------------------------------------------------------------------
# Status variants
# ---------------------------------------------------------------------------

_STRICT = {"frozen": True, "extra": "forbid"}


class Pending(BaseModel):
    model_config = _STRICT

    type: Literal["pending"] = "pending"


class Preparing(BaseModel):
    model_config = _STRICT

    type: Literal["preparing"] = "preparing"


class Shipped(BaseModel):
    model_config = _STRICT

    type: Literal["shipped"] = "shipped"
    shipped_at: AwareDatetime
    tracking_number: TrackingNumberField


class Delivered(BaseModel):
    model_config = _STRICT

    type: Literal["delivered"] = "delivered"
    delivered_at: AwareDatetime


class Failed(BaseModel):
    model_config = _STRICT

    type: Literal["failed"] = "failed"
    failed_at: AwareDatetime
    reason: str = Field(min_length=1, max_length=500)


ShippingStatus = Annotated[
    Union[Pending, Preparing, Shipped, Delivered, Failed],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Aggregate root
# ---------------------------------------------------------------------------

class Shipping(BaseModel):
    """Immutable shipment snapshot."""

    model_config = _STRICT

    id: Identifier
    order_id: Identifier
    shipping_address: Address
    method: ShippingMethod
    status: ShippingStatus
    estimated_delivery_date: AwareDatetime
    created_at: AwareDatetime
    updated_at: AwareDatetime

    @model_validator(mode="after")
    def check_timestamps(self) -> Shipping:
        if self.estimated_delivery_date <= self.created_at:
            raise ValueError("estimated_delivery_date must be after created_at")
        if self.updated_at < self.created_at:
            raise ValueError("updated_at cannot be before created_at")
        return self

    @property
    def status_type(self) -> ShippingStatusType:
        return ShippingStatusType(self.status.type)

    @property
    def is_terminal(self) -> bool:
        return self.status_type in TERMINAL_SHIPPING_STATUSES

    @property
    def tracking_number(self) -> str | None:
        return getattr(self.status, "tracking_number", None)


def validate_shipping(
    candidate: Shipping | Mapping[str, Any],
) -> Result[Shipping, WorkflowFailure]:
    """Accept a candidate snapshot or report the first violated constraint."""
    data = candidate.model_dump() if isinstance(candidate, Shipping) else candidate
    try:
        return Ok(Shipping.model_validate(data))
    except ValidationError as exc:
        return Err(validation_error(first_error_message(exc, "invalid shipping")))

"""Command schemas: the shape of input each handler accepts."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError

from order_shipping.core.enums import ShippingMethod
from order_shipping.core.result import Err, Ok, Result
from order_shipping.domain.failures import (
    WorkflowFailure,
    first_error_message,
    validation_error,
)
from order_shipping.domain.value_objects import Address, Identifier, OrderLine

_STRICT = {"frozen": True, "extra": "forbid"}

C = TypeVar("C", bound=BaseModel)


class PlaceOrderCommand(BaseModel):
    model_config = _STRICT

    lines: tuple[OrderLine, ...] = Field(min_length=1)
    # A fresh customer id is allocated when omitted.
    customer_id: Identifier | None = None


class PayOrderCommand(BaseModel):
    model_config = _STRICT

    order_id: Identifier


class CreateShipmentCommand(BaseModel):
    model_config = _STRICT

    order_id: Identifier
    shipping_address: Address
    method: ShippingMethod


class PrepareShipmentCommand(BaseModel):
    model_config = _STRICT

    shipping_id: Identifier


class ShipShipmentCommand(BaseModel):
    model_config = _STRICT

    shipping_id: Identifier


class DeliverShipmentCommand(BaseModel):
    model_config = _STRICT

    shipping_id: Identifier


def parse_command(
    schema: type[C],
    raw: C | Mapping[str, Any],
) -> Result[C, WorkflowFailure]:
    """Validate *raw* against *schema*.

    Instances of *schema* are re-validated too, so a command built with
    ``model_construct`` cannot bypass the checks.
    """
    data = raw.model_dump() if isinstance(raw, schema) else raw
    try:
        return Ok(schema.model_validate(data))
    except ValidationError as exc:
        return Err(validation_error(first_error_message(exc, "invalid command")))

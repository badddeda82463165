"""Value objects and their smart constructors.

Every ``create_*`` function is the only sanctioned way to obtain a
value.  Constructors take primitive input and return
``Ok(value)`` or ``Err(WorkflowFailure)`` with kind ``validation_error``;
they never raise for bad input.  Identifier and tracking number
generators cannot fail and return the bare value.

The ``Annotated`` aliases (``Price``, ``Quantity`` ...) are reused as
field types by the aggregate schemas, so a snapshot is checked by the
exact same rules as a standalone value.
"""

from __future__ import annotations

import random
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Any, NewType

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from order_shipping.core.ids import new_id
from order_shipping.core.result import Err, Ok, Result
from order_shipping.domain.failures import (
    WorkflowFailure,
    first_error_message,
    validation_error,
)

# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------

OrderId = NewType("OrderId", str)
CustomerId = NewType("CustomerId", str)
ProductId = NewType("ProductId", str)
ShippingId = NewType("ShippingId", str)

# Opaque token: any non-blank string.  Generated ids are UUID v4.
Identifier = Annotated[str, Field(min_length=1, max_length=64)]


def create_order_id() -> OrderId:
    return OrderId(new_id())


def create_customer_id() -> CustomerId:
    return CustomerId(new_id())


def create_product_id() -> ProductId:
    return ProductId(new_id())


def create_shipping_id() -> ShippingId:
    return ShippingId(new_id())


# ---------------------------------------------------------------------------
# Price
# ---------------------------------------------------------------------------

CENT = Decimal("0.01")
MAX_PRICE = Decimal("999999.99")


def _to_decimal(value: Any) -> Any:
    # bool is an int subclass; never a price.
    if isinstance(value, bool):
        raise ValueError("price must be a number")
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def _check_price(value: Decimal) -> Decimal:
    if value < 0:
        raise ValueError("price cannot be negative")
    if value > MAX_PRICE:
        raise ValueError("price cannot exceed 999,999.99")
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


Price = Annotated[
    Decimal,
    BeforeValidator(_to_decimal),
    AfterValidator(_check_price),
]

_price_adapter: TypeAdapter[Decimal] = TypeAdapter(Price)


def create_price(value: float | int | str | Decimal) -> Result[Decimal, WorkflowFailure]:
    """Validate a price and round it to 2 decimal places (half-up)."""
    try:
        return Ok(_price_adapter.validate_python(value))
    except ValidationError as exc:
        return Err(validation_error(first_error_message(exc, "invalid price")))


# ---------------------------------------------------------------------------
# Quantity
# ---------------------------------------------------------------------------

MAX_QUANTITY = 9999


def _reject_bool(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("quantity must be an integer")
    return value


def _check_quantity(value: int) -> int:
    if value <= 0:
        raise ValueError("quantity must be positive")
    if value > MAX_QUANTITY:
        raise ValueError(f"quantity cannot exceed {MAX_QUANTITY}")
    return value


# Strict: "3" and 3.0 are not quantities.
Quantity = Annotated[
    int,
    Field(strict=True),
    BeforeValidator(_reject_bool),
    AfterValidator(_check_quantity),
]

_quantity_adapter: TypeAdapter[int] = TypeAdapter(Quantity)


def create_quantity(value: int) -> Result[int, WorkflowFailure]:
    """Validate a positive integer quantity no larger than 9999."""
    try:
        return Ok(_quantity_adapter.validate_python(value))
    except ValidationError as exc:
        return Err(validation_error(first_error_message(exc, "invalid quantity")))


# ---------------------------------------------------------------------------
# Tracking number
# ---------------------------------------------------------------------------

TrackingNumber = NewType("TrackingNumber", str)

DEFAULT_CARRIER_PREFIX = "JP"
TRACKING_NUMBER_PATTERN = re.compile(r"[A-Z]{2}\d{9}")


def _check_tracking_number(value: str) -> str:
    if not TRACKING_NUMBER_PATTERN.fullmatch(value):
        raise ValueError(
            "tracking number must be a 2-letter carrier prefix followed by 9 digits"
        )
    return value


TrackingNumberField = Annotated[str, AfterValidator(_check_tracking_number)]

_tracking_adapter: TypeAdapter[str] = TypeAdapter(TrackingNumberField)


def create_tracking_number(prefix: str = DEFAULT_CARRIER_PREFIX) -> TrackingNumber:
    """Generate a carrier-format tracking number, e.g. ``JP004211337``.

    Raises ``ValueError`` for a malformed *prefix*; that is a wiring
    mistake, not user input.
    """
    if not re.fullmatch(r"[A-Z]{2}", prefix):
        raise ValueError(f"carrier prefix must be 2 uppercase letters, got {prefix!r}")
    suffix = random.randrange(1_000_000_000)
    return TrackingNumber(f"{prefix}{suffix:09d}")


def parse_tracking_number(value: str) -> Result[TrackingNumber, WorkflowFailure]:
    """Validate a tracking number received from outside (e.g. a carrier)."""
    try:
        return Ok(TrackingNumber(_tracking_adapter.validate_python(value)))
    except ValidationError as exc:
        return Err(validation_error(first_error_message(exc, "invalid tracking number")))


# ---------------------------------------------------------------------------
# Composite value objects
# ---------------------------------------------------------------------------

ProductName = Annotated[str, Field(min_length=1, max_length=100)]

POSTAL_CODE_PATTERN = re.compile(r"\d{3}-\d{4}")


class OrderLine(BaseModel):
    """One product on an order.  ``product_id`` is unique within an order."""

    model_config = {"frozen": True, "extra": "forbid"}

    product_id: Identifier
    product_name: ProductName
    unit_price: Price
    quantity: Quantity

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


class Address(BaseModel):
    """Destination address.  Postal codes use the ``000-0000`` format."""

    model_config = {"frozen": True, "extra": "forbid"}

    street: str = Field(min_length=1, max_length=100)
    city: str = Field(min_length=1, max_length=50)
    state: str = Field(min_length=1, max_length=50)
    postal_code: str
    country: str = Field(min_length=1, max_length=50)

    @field_validator("postal_code")
    @classmethod
    def postal_code_format(cls, v: str) -> str:
        if not POSTAL_CODE_PATTERN.fullmatch(v):
            raise ValueError("postal code must use the 000-0000 format")
        return v


def create_order_line(
    product_id: str,
    product_name: str,
    unit_price: float | int | str | Decimal,
    quantity: int,
) -> Result[OrderLine, WorkflowFailure]:
    try:
        return Ok(
            OrderLine(
                product_id=product_id,
                product_name=product_name,
                unit_price=unit_price,
                quantity=quantity,
            )
        )
    except ValidationError as exc:
        return Err(validation_error(first_error_message(exc, "invalid order line")))


def create_address(
    street: str,
    city: str,
    state: str,
    postal_code: str,
    country: str,
) -> Result[Address, WorkflowFailure]:
    try:
        return Ok(
            Address(
                street=street,
                city=city,
                state=state,
                postal_code=postal_code,
                country=country,
            )
        )
    except ValidationError as exc:
        return Err(validation_error(first_error_message(exc, "invalid address")))

"""Domain events emitted by the command handlers.

Design invariants
-----------------
1.  Every event is **immutable** (``frozen=True``).
2.  ``event_type`` is fixed per class and cannot be passed to the
    constructor; it is the tag consumers switch on.
3.  ``event_id`` is a UUID4 generated at creation time and serves as the
    idempotency key for subscribers.
4.  ``aggregate_id`` is the id of the order or shipment the event is about.
5.  ``correlation_id`` ties the event to the log lines of the command
    that produced it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from order_shipping.core.enums import EventType
from order_shipping.core.ids import new_id as _uuid
from order_shipping.core.ids import utc_now as _now

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DomainEvent:
    """Immutable base for every domain event."""

    aggregate_id: str = ""
    event_id: str = field(default_factory=_uuid)
    occurred_at: datetime = field(default_factory=_now)
    correlation_id: str = ""
    event_type: str = field(default="", init=False)

    def to_dict(self) -> dict[str, Any]:
        """Return a plain dict copy (for logs and serialization)."""
        return asdict(self)


# =========================================================================
# Order events
# =========================================================================

@dataclass(frozen=True)
class OrderPlaced(DomainEvent):
    """A draft order with at least one line was placed."""

    event_type: str = field(default=EventType.ORDER_PLACED.value, init=False)
    customer_id: str = ""
    total_amount: Decimal = Decimal("0")


@dataclass(frozen=True)
class OrderPaid(DomainEvent):
    """A placed order was paid."""

    event_type: str = field(default=EventType.ORDER_PAID.value, init=False)


# =========================================================================
# Shipment events
# =========================================================================

@dataclass(frozen=True)
class ShipmentStarted(DomainEvent):
    """A shipment left the warehouse with a tracking number."""

    event_type: str = field(default=EventType.SHIPMENT_STARTED.value, init=False)
    order_id: str = ""
    tracking_number: str = ""


@dataclass(frozen=True)
class ShipmentDelivered(DomainEvent):
    """A shipment reached its destination."""

    event_type: str = field(default=EventType.SHIPMENT_DELIVERED.value, init=False)
    order_id: str = ""


ALL_DOMAIN_EVENTS: tuple[type[DomainEvent], ...] = (
    OrderPlaced,
    OrderPaid,
    ShipmentStarted,
    ShipmentDelivered,
)

EVENT_CLASSES: dict[str, type[DomainEvent]] = {
    EventType.ORDER_PLACED.value: OrderPlaced,
    EventType.ORDER_PAID.value: OrderPaid,
    EventType.SHIPMENT_STARTED.value: ShipmentStarted,
    EventType.SHIPMENT_DELIVERED.value: ShipmentDelivered,
}

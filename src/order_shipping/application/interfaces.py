"""Protocol interfaces for the collaborators the command handlers consume.

All module boundaries are defined here as Protocol classes.
Implementations (in-memory, database, message broker) can be swapped
without changing callers.

Contract shared by every collaborator
-------------------------------------
*  Methods may raise; handlers convert any raised exception into a
   ``repository_error`` failure.
*  ``save`` is idempotent for the same snapshot and last-write-wins for
   different snapshots of the same id, unless an implementation
   documents a stricter policy (see ``reject_stale_writes``).  Handlers
   that modify a loaded snapshot pass its ``updated_at`` as
   ``expected_updated_at`` so such a policy can detect lost updates.
*  ``find_*`` methods return the latest stored snapshot, or ``None``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from order_shipping.core.enums import OrderStatusType, ShippingStatusType
from order_shipping.domain.events import DomainEvent
from order_shipping.domain.order import Order
from order_shipping.domain.shipping import Shipping
from order_shipping.domain.value_objects import (
    CustomerId,
    OrderId,
    ShippingId,
)


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------

@runtime_checkable
class IOrderRepository(Protocol):
    """System of record for Order snapshots."""

    async def save(
        self, order: Order, *, expected_updated_at: datetime | None = None
    ) -> None: ...

    async def find_by_id(self, order_id: OrderId | str) -> Order | None: ...

    async def find_by_customer_id(
        self, customer_id: CustomerId | str
    ) -> list[Order]:
        """Orders of one customer, oldest first."""
        ...

    async def find_by_status(self, status: OrderStatusType | str) -> list[Order]: ...

    def next_id(self) -> OrderId: ...


@runtime_checkable
class IShippingRepository(Protocol):
    """System of record for Shipping snapshots.  One shipment per order."""

    async def save(
        self, shipping: Shipping, *, expected_updated_at: datetime | None = None
    ) -> None: ...

    async def find_by_id(self, shipping_id: ShippingId | str) -> Shipping | None: ...

    async def find_by_order_id(self, order_id: OrderId | str) -> Shipping | None: ...

    async def find_by_status(
        self, status: ShippingStatusType | str
    ) -> list[Shipping]: ...

    def next_id(self) -> ShippingId: ...


# ---------------------------------------------------------------------------
# Event Bus
# ---------------------------------------------------------------------------

@runtime_checkable
class IEventBus(Protocol):
    """Fire-and-forget event sink.

    ``publish`` returning means the bus accepted the event; raising means
    it did not.  Subscriber failures are the bus's concern, not the
    publisher's.
    """

    async def publish(self, event: DomainEvent) -> None: ...

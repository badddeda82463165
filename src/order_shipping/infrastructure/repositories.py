"""In-memory repositories for tests and local development.

Each repository keeps the latest snapshot per id plus secondary indices.
Saves are serialised with an ``asyncio.Lock`` so index updates are never
interleaved between two writers on the same event loop.

Concurrency policy
------------------
By default the latest ``save`` wins and ``expected_updated_at`` is
ignored.  With ``reject_stale_writes=True`` ``save`` becomes a
compare-and-swap: a caller that loaded a snapshot passes its
``updated_at`` as ``expected_updated_at`` and the write is refused with
``StaleWriteError`` when the stored snapshot has moved on since.  Two
writers starting from the same snapshot therefore cannot both succeed.
Saves without a token are still refused when they carry an older
``updated_at`` than the stored snapshot; re-saving an identical snapshot
is accepted.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from order_shipping.core.enums import OrderStatusType, ShippingStatusType
from order_shipping.core.errors import StaleWriteError
from order_shipping.domain.order import Order
from order_shipping.domain.shipping import Shipping
from order_shipping.domain.value_objects import (
    CustomerId,
    OrderId,
    ShippingId,
    create_order_id,
    create_shipping_id,
)

logger = logging.getLogger(__name__)


def _check_write(
    stored: Order | Shipping | None,
    incoming: Order | Shipping,
    expected_updated_at: datetime | None,
) -> None:
    """Raise ``StaleWriteError`` when *incoming* would overwrite a newer write."""
    if expected_updated_at is not None:
        current = stored.updated_at if stored is not None else None
        if current != expected_updated_at:
            raise StaleWriteError(incoming.id, current, expected_updated_at)
    if stored is not None and incoming.updated_at < stored.updated_at:
        raise StaleWriteError(incoming.id, stored.updated_at, incoming.updated_at)


class InMemoryOrderRepository:
    """Dict-backed ``IOrderRepository``."""

    def __init__(self, *, reject_stale_writes: bool = False) -> None:
        self._orders: dict[str, Order] = {}
        self._orders_by_customer: dict[str, list[str]] = {}
        self._reject_stale_writes = reject_stale_writes
        self._lock = asyncio.Lock()

    async def save(
        self, order: Order, *, expected_updated_at: datetime | None = None
    ) -> None:
        async with self._lock:
            if self._reject_stale_writes:
                _check_write(self._orders.get(order.id), order, expected_updated_at)

            self._orders[order.id] = order
            ids = self._orders_by_customer.setdefault(order.customer_id, [])
            if order.id not in ids:
                ids.append(order.id)
        logger.debug("Saved order %s status=%s", order.id, order.status.type)

    async def find_by_id(self, order_id: OrderId | str) -> Order | None:
        return self._orders.get(order_id)

    async def find_by_customer_id(self, customer_id: CustomerId | str) -> list[Order]:
        orders = [
            self._orders[oid]
            for oid in self._orders_by_customer.get(customer_id, [])
        ]
        return sorted(orders, key=lambda o: o.created_at)

    async def find_by_status(self, status: OrderStatusType | str) -> list[Order]:
        wanted = OrderStatusType(status)
        return [o for o in self._orders.values() if o.status_type == wanted]

    def next_id(self) -> OrderId:
        return create_order_id()

    # -- Testing helpers ---------------------------------------------------

    def clear(self) -> None:
        self._orders.clear()
        self._orders_by_customer.clear()

    def get_all(self) -> list[Order]:
        return list(self._orders.values())

    def size(self) -> int:
        return len(self._orders)


class InMemoryShippingRepository:
    """Dict-backed ``IShippingRepository``."""

    def __init__(self, *, reject_stale_writes: bool = False) -> None:
        self._shippings: dict[str, Shipping] = {}
        self._shippings_by_order: dict[str, str] = {}
        self._reject_stale_writes = reject_stale_writes
        self._lock = asyncio.Lock()

    async def save(
        self, shipping: Shipping, *, expected_updated_at: datetime | None = None
    ) -> None:
        async with self._lock:
            if self._reject_stale_writes:
                _check_write(
                    self._shippings.get(shipping.id), shipping, expected_updated_at
                )

            self._shippings[shipping.id] = shipping
            self._shippings_by_order[shipping.order_id] = shipping.id
        logger.debug(
            "Saved shipping %s status=%s", shipping.id, shipping.status.type
        )

    async def find_by_id(self, shipping_id: ShippingId | str) -> Shipping | None:
        return self._shippings.get(shipping_id)

    async def find_by_order_id(self, order_id: OrderId | str) -> Shipping | None:
        shipping_id = self._shippings_by_order.get(order_id)
        if shipping_id is None:
            return None
        return self._shippings.get(shipping_id)

    async def find_by_status(self, status: ShippingStatusType | str) -> list[Shipping]:
        wanted = ShippingStatusType(status)
        return [s for s in self._shippings.values() if s.status_type == wanted]

    def next_id(self) -> ShippingId:
        return create_shipping_id()

    # -- Testing helpers ---------------------------------------------------

    def clear(self) -> None:
        self._shippings.clear()
        self._shippings_by_order.clear()

    def get_all(self) -> list[Shipping]:
        return list(self._shippings.values())

    def size(self) -> int:
        return len(self._shippings)

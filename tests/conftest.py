"""Shared fixtures for the order-shipping test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from order_shipping.core.clock import SimClock
from order_shipping.core.enums import ShippingMethod
from order_shipping.domain.order import Order
from order_shipping.domain.order_transitions import (
    add_order_line,
    create_order,
    mark_order_paid,
    place_order,
)
from order_shipping.domain.shipping import Shipping
from order_shipping.domain.shipping_transitions import create_shipping
from order_shipping.domain.value_objects import Address, OrderLine
from order_shipping.infrastructure.event_bus import InMemoryEventBus
from order_shipping.infrastructure.repositories import (
    InMemoryOrderRepository,
    InMemoryShippingRepository,
)


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

@pytest.fixture
def sim_clock() -> SimClock:
    """Return a SimClock starting at 2024-06-01 00:00 UTC."""
    return SimClock(start=datetime(2024, 6, 1, tzinfo=timezone.utc))


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

@pytest.fixture
def order_repo() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture
def shipping_repo() -> InMemoryShippingRepository:
    return InMemoryShippingRepository()


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------

@pytest.fixture
def address() -> Address:
    return Address(
        street="1-2-3 Shibuya",
        city="Shibuya",
        state="Tokyo",
        postal_code="150-0002",
        country="Japan",
    )


@pytest.fixture
def book_line() -> OrderLine:
    """Two books at 1500.00 each."""
    return OrderLine(
        product_id="prod-book",
        product_name="Book",
        unit_price=Decimal("1500"),
        quantity=2,
    )


@pytest.fixture
def pen_line() -> OrderLine:
    """One pen set at 2800.00."""
    return OrderLine(
        product_id="prod-pen",
        product_name="Pen set",
        unit_price=Decimal("2800"),
        quantity=1,
    )


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

@pytest.fixture
def draft_order(sim_clock: SimClock) -> Order:
    return create_order("cust-1", order_id="order-1", clock=sim_clock)


@pytest.fixture
def placed_order(draft_order, book_line, pen_line, sim_clock) -> Order:
    order = add_order_line(draft_order, book_line, clock=sim_clock).unwrap()
    order = add_order_line(order, pen_line, clock=sim_clock).unwrap()
    sim_clock.advance(minutes=1)
    return place_order(order, clock=sim_clock).unwrap()


@pytest.fixture
def paid_order(placed_order, sim_clock) -> Order:
    sim_clock.advance(minutes=1)
    return mark_order_paid(placed_order, clock=sim_clock).unwrap()


@pytest.fixture
def pending_shipping(paid_order, address, sim_clock) -> Shipping:
    return create_shipping(
        paid_order.id,
        address,
        ShippingMethod.STANDARD,
        shipping_id="ship-1",
        clock=sim_clock,
    )

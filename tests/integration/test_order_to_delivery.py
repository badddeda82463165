"""End-to-end: place -> pay -> create shipment -> prepare -> ship -> deliver.

Everything is wired through ``build_application`` with a SimClock so the
estimated delivery date and every timestamp are exact.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from order_shipping.bootstrap import build_application
from order_shipping.core.clock import SimClock
from order_shipping.core.config import load_settings
from order_shipping.core.enums import ErrorKind, EventType, OrderStatusType, ShippingStatusType
from order_shipping.core.result import Err, Ok

START = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)

ADDRESS = {
    "street": "1-2-3 Shibuya",
    "city": "Shibuya",
    "state": "Tokyo",
    "postal_code": "150-0002",
    "country": "Japan",
}


@pytest.fixture
def clock() -> SimClock:
    return SimClock(start=START)


@pytest.fixture
def app(clock):
    settings = load_settings(overrides={"shipping": {"carrier_prefix": "YM"}})
    return build_application(settings, clock=clock)


@pytest.mark.asyncio
async def test_full_lifecycle(app, clock):
    placed = await app.place_order({
        "customer_id": "cust-42",
        "lines": [
            {"product_id": "book", "product_name": "Book", "unit_price": 1500, "quantity": 2},
            {"product_id": "pen", "product_name": "Pen set", "unit_price": 2800, "quantity": 1},
        ],
    })
    assert isinstance(placed, Ok)
    order_id = placed.value

    order = await app.orders.find_by_id(order_id)
    assert order.total_amount == Decimal("5800.00")
    assert order.status_type == OrderStatusType.PLACED

    clock.advance(minutes=10)
    assert await app.pay_order({"order_id": order_id}) == Ok(order_id)

    clock.advance(minutes=5)
    created = await app.create_shipment({
        "order_id": order_id,
        "shipping_address": ADDRESS,
        "method": "standard",
    })
    assert isinstance(created, Ok)
    shipping_id = created.value

    shipping = await app.shippings.find_by_id(shipping_id)
    assert shipping.estimated_delivery_date == clock.now() + timedelta(days=7)

    duplicate = await app.create_shipment({
        "order_id": order_id,
        "shipping_address": ADDRESS,
        "method": "express",
    })
    assert isinstance(duplicate, Err)
    assert duplicate.error.kind == ErrorKind.BUSINESS_RULE_VIOLATION

    command = {"shipping_id": shipping_id}
    assert await app.prepare_shipment(command) == Ok(shipping_id)

    clock.advance(hours=3)
    shipped = await app.ship_shipment(command)
    assert isinstance(shipped, Ok)
    assert shipped.value.startswith("YM")

    clock.advance(days=2)
    assert await app.deliver_shipment(command) == Ok(shipping_id)

    final = await app.shippings.find_by_order_id(order_id)
    assert final.status_type == ShippingStatusType.DELIVERED
    assert final.status.delivered_at == clock.now()

    assert [e.event_type for e in app.event_bus.get_history()] == [
        EventType.ORDER_PLACED.value,
        EventType.ORDER_PAID.value,
        EventType.SHIPMENT_STARTED.value,
        EventType.SHIPMENT_DELIVERED.value,
    ]
    assert (await app.orders.find_by_customer_id("cust-42"))[0].id == order_id


@pytest.mark.asyncio
async def test_stopped_bus_surfaces_as_repository_error(clock):
    settings = load_settings(overrides={"event_bus": {"require_running": True}})
    app = build_application(settings, clock=clock)

    result = await app.place_order({
        "lines": [{"product_id": "p", "product_name": "P", "unit_price": 1, "quantity": 1}],
    })

    assert isinstance(result, Err)
    assert result.error.kind == ErrorKind.REPOSITORY_ERROR

    await app.event_bus.start()
    assert isinstance(await app.place_order({
        "lines": [{"product_id": "p", "product_name": "P", "unit_price": 1, "quantity": 1}],
    }), Ok)


@pytest.mark.asyncio
async def test_paying_twice_is_rejected(app):
    placed = await app.place_order({
        "lines": [{"product_id": "p", "product_name": "P", "unit_price": 9.99, "quantity": 3}],
    })
    order_id = placed.unwrap()
    assert isinstance(await app.pay_order({"order_id": order_id}), Ok)

    again = await app.pay_order({"order_id": order_id})
    assert isinstance(again, Err)
    assert again.error.kind == ErrorKind.BUSINESS_RULE_VIOLATION
    assert len(app.event_bus.get_history()) == 2

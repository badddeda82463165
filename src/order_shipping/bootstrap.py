"""Application wiring.

Builds the repositories, the event bus and every command handler from
one ``Settings`` object so callers (tests, scripts, a future API layer)
never assemble collaborators by hand.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass

from order_shipping.application.create_shipment import CreateShipmentHandler
from order_shipping.application.pay_order import PayOrderHandler
from order_shipping.application.place_order import PlaceOrderHandler
from order_shipping.application.shipment_progress import (
    DeliverShipmentHandler,
    PrepareShipmentHandler,
    ShipShipmentHandler,
)
from order_shipping.core.clock import IClock, WallClock
from order_shipping.core.config import Settings
from order_shipping.domain.value_objects import create_tracking_number
from order_shipping.infrastructure.event_bus import InMemoryEventBus
from order_shipping.infrastructure.repositories import (
    InMemoryOrderRepository,
    InMemoryShippingRepository,
)
from order_shipping.observability.logger import setup_logging

logger = logging.getLogger(__name__)


@dataclass
class Application:
    settings: Settings
    clock: IClock
    orders: InMemoryOrderRepository
    shippings: InMemoryShippingRepository
    event_bus: InMemoryEventBus
    place_order: PlaceOrderHandler
    pay_order: PayOrderHandler
    create_shipment: CreateShipmentHandler
    prepare_shipment: PrepareShipmentHandler
    ship_shipment: ShipShipmentHandler
    deliver_shipment: DeliverShipmentHandler


def build_application(
    settings: Settings | None = None,
    *,
    clock: IClock | None = None,
    configure_logging: bool = False,
) -> Application:
    """Wire all modules for *settings* (defaults when omitted)."""
    settings = settings or Settings()

    # 1. Logging
    if configure_logging:
        setup_logging(
            level=settings.observability.log_level,
            format=settings.observability.log_format,
        )

    # 2. Clock
    clock = clock or WallClock()

    # 3. Storage and events
    reject_stale = settings.repository.reject_stale_writes
    orders = InMemoryOrderRepository(reject_stale_writes=reject_stale)
    shippings = InMemoryShippingRepository(reject_stale_writes=reject_stale)
    event_bus = InMemoryEventBus(require_running=settings.event_bus.require_running)

    # 4. Handlers
    lead_days = settings.shipping.lead_days
    tracking_numbers = functools.partial(
        create_tracking_number, settings.shipping.carrier_prefix
    )

    logger.info(
        "Application built: carrier_prefix=%s reject_stale_writes=%s",
        settings.shipping.carrier_prefix,
        reject_stale,
    )

    return Application(
        settings=settings,
        clock=clock,
        orders=orders,
        shippings=shippings,
        event_bus=event_bus,
        place_order=PlaceOrderHandler(orders, event_bus, clock=clock),
        pay_order=PayOrderHandler(orders, event_bus, clock=clock),
        create_shipment=CreateShipmentHandler(
            orders, shippings, lead_days=lead_days, clock=clock
        ),
        prepare_shipment=PrepareShipmentHandler(shippings, clock=clock),
        ship_shipment=ShipShipmentHandler(
            shippings, event_bus, tracking_numbers=tracking_numbers, clock=clock
        ),
        deliver_shipment=DeliverShipmentHandler(shippings, event_bus, clock=clock),
    )

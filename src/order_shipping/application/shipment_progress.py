"""Move an existing shipment along PENDING -> PREPARING -> SHIPPED -> DELIVERED."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from order_shipping.application.base import CommandHandler, attempt, guard, require
from order_shipping.application.commands import (
    DeliverShipmentCommand,
    PrepareShipmentCommand,
    ShipShipmentCommand,
    parse_command,
)
from order_shipping.application.interfaces import IEventBus, IShippingRepository
from order_shipping.core.clock import DEFAULT_CLOCK, IClock
from order_shipping.core.enums import ShippingStatusType
from order_shipping.core.result import AsyncResult, Err, Result
from order_shipping.domain.events import ShipmentDelivered, ShipmentStarted
from order_shipping.domain.failures import WorkflowFailure, not_found
from order_shipping.domain.shipping import Shipping, can_transition
from order_shipping.domain.shipping_transitions import deliver, ship, start_preparation
from order_shipping.domain.value_objects import (
    ShippingId,
    TrackingNumber,
    create_tracking_number,
)


class _ShipmentStepHandler(CommandHandler):
    def __init__(
        self,
        shippings: IShippingRepository,
        *,
        clock: IClock = DEFAULT_CLOCK,
    ) -> None:
        super().__init__(clock=clock)
        self._shippings = shippings

    def _load(self, shipping_id: str) -> AsyncResult[Shipping, WorkflowFailure]:
        return guard(
            lambda: self._shippings.find_by_id(shipping_id), "failed to load shipment"
        ).chain_result(lambda shipping: require(
            shipping, lambda: not_found(f"shipment {shipping_id} not found")
        ))

    def _advance(
        self,
        current: Shipping,
        step: Callable[[Shipping], Result[Shipping, WorkflowFailure]],
    ) -> AsyncResult[Shipping, WorkflowFailure]:
        """Apply *step* and save the result against *current*'s ``updated_at``."""
        return AsyncResult.from_result(step(current)).chain(lambda updated: guard(
            lambda: self._shippings.save(
                updated, expected_updated_at=current.updated_at
            ),
            "failed to save shipment",
        ).map(lambda _: updated))


class PrepareShipmentHandler(_ShipmentStepHandler):
    """PENDING -> PREPARING.  No event is published."""

    command_name = "prepare_shipment"

    async def __call__(
        self, command: PrepareShipmentCommand | Mapping[str, Any]
    ) -> Result[ShippingId, WorkflowFailure]:
        with self._invocation():
            parsed = parse_command(PrepareShipmentCommand, command)
            if isinstance(parsed, Err):
                return self._rejected(parsed)
            shipping_id = parsed.value.shipping_id

            pipeline = (
                self._load(shipping_id)
                .chain(lambda s: self._advance(
                    s, lambda cur: start_preparation(cur, clock=self._clock)
                ))
                .map(lambda s: ShippingId(s.id))
            )
            return await self._finish(pipeline, shipping_id=shipping_id)


class ShipShipmentHandler(_ShipmentStepHandler):
    """PREPARING -> SHIPPED, then publish ``shipment_started``.

    The tracking number comes from *tracking_numbers* (the carrier) and is
    only requested once the shipment is known to be PREPARING.  A carrier
    fault becomes ``repository_error`` and leaves the shipment untouched.
    Resolves to ``Ok(tracking_number)``.
    """

    command_name = "ship_shipment"

    def __init__(
        self,
        shippings: IShippingRepository,
        events: IEventBus,
        *,
        tracking_numbers: Callable[[], str] = create_tracking_number,
        clock: IClock = DEFAULT_CLOCK,
    ) -> None:
        super().__init__(shippings, clock=clock)
        self._events = events
        self._tracking_numbers = tracking_numbers

    async def __call__(
        self, command: ShipShipmentCommand | Mapping[str, Any]
    ) -> Result[TrackingNumber, WorkflowFailure]:
        with self._invocation() as correlation_id:
            parsed = parse_command(ShipShipmentCommand, command)
            if isinstance(parsed, Err):
                return self._rejected(parsed)
            shipping_id = parsed.value.shipping_id

            pipeline = (
                self._load(shipping_id)
                .chain(lambda s: self._advance(s, self._ship))
                .chain(lambda s: self._publish(s, correlation_id))
            )
            return await self._finish(pipeline, shipping_id=shipping_id)

    def _ship(self, shipping: Shipping) -> Result[Shipping, WorkflowFailure]:
        if not can_transition(shipping.status.type, ShippingStatusType.SHIPPED):
            return ship(shipping, clock=self._clock)
        return attempt(
            self._tracking_numbers, "failed to obtain a tracking number"
        ).and_then(lambda tracking_number: ship(
            shipping, tracking_number=tracking_number, clock=self._clock
        ))

    def _publish(
        self, shipping: Shipping, correlation_id: str
    ) -> AsyncResult[TrackingNumber, WorkflowFailure]:
        tracking_number = TrackingNumber(shipping.tracking_number or "")
        event = ShipmentStarted(
            aggregate_id=shipping.id,
            occurred_at=self._clock.now(),
            correlation_id=correlation_id,
            order_id=shipping.order_id,
            tracking_number=tracking_number,
        )
        return guard(
            lambda: self._events.publish(event), "failed to publish shipment_started"
        ).map(lambda _: tracking_number)


class DeliverShipmentHandler(_ShipmentStepHandler):
    """SHIPPED -> DELIVERED, then publish ``shipment_delivered``."""

    command_name = "deliver_shipment"

    def __init__(
        self,
        shippings: IShippingRepository,
        events: IEventBus,
        *,
        clock: IClock = DEFAULT_CLOCK,
    ) -> None:
        super().__init__(shippings, clock=clock)
        self._events = events

    async def __call__(
        self, command: DeliverShipmentCommand | Mapping[str, Any]
    ) -> Result[ShippingId, WorkflowFailure]:
        with self._invocation() as correlation_id:
            parsed = parse_command(DeliverShipmentCommand, command)
            if isinstance(parsed, Err):
                return self._rejected(parsed)
            shipping_id = parsed.value.shipping_id

            pipeline = (
                self._load(shipping_id)
                .chain(lambda s: self._advance(
                    s, lambda cur: deliver(cur, clock=self._clock)
                ))
                .chain(lambda s: guard(
                    lambda: self._events.publish(ShipmentDelivered(
                        aggregate_id=s.id,
                        occurred_at=self._clock.now(),
                        correlation_id=correlation_id,
                        order_id=s.order_id,
                    )),
                    "failed to publish shipment_delivered",
                ).map(lambda _: ShippingId(s.id)))
            )
            return await self._finish(pipeline, shipping_id=shipping_id)

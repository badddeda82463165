"""Create shipment: one shipment per paid order."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from order_shipping.application.base import (
    CommandHandler,
    allocate_id,
    attempt,
    guard,
    require,
)
from order_shipping.application.commands import CreateShipmentCommand, parse_command
from order_shipping.application.interfaces import IOrderRepository, IShippingRepository
from order_shipping.core.clock import DEFAULT_CLOCK, IClock
from order_shipping.core.enums import OrderStatusType, ShippingMethod
from order_shipping.core.result import AsyncResult, Err, Ok, Result
from order_shipping.domain.failures import (
    WorkflowFailure,
    business_rule_violation,
    not_found,
)
from order_shipping.domain.order import Order
from order_shipping.domain.shipping import Shipping
from order_shipping.domain.shipping_transitions import create_shipping
from order_shipping.domain.value_objects import ShippingId


def _require_paid(order: Order) -> Result[Order, WorkflowFailure]:
    if order.status_type != OrderStatusType.PAID:
        return Err(
            business_rule_violation(
                f"only paid orders can be shipped (order {order.id} is {order.status.type})"
            )
        )
    return Ok(order)


def _require_no_shipment(
    existing: Shipping | None, order_id: str
) -> Result[None, WorkflowFailure]:
    if existing is not None:
        return Err(
            business_rule_violation(
                f"order {order_id} already has shipment {existing.id}"
            )
        )
    return Ok(None)


class CreateShipmentHandler(CommandHandler):
    """validate -> load order -> must be PAID -> no existing shipment -> create -> save.

    Resolves to ``Ok(shipping_id)``.
    """

    command_name = "create_shipment"

    def __init__(
        self,
        orders: IOrderRepository,
        shippings: IShippingRepository,
        *,
        lead_days: Mapping[ShippingMethod, int] | None = None,
        clock: IClock = DEFAULT_CLOCK,
    ) -> None:
        super().__init__(clock=clock)
        self._orders = orders
        self._shippings = shippings
        self._lead_days = lead_days

    async def __call__(
        self, command: CreateShipmentCommand | Mapping[str, Any]
    ) -> Result[ShippingId, WorkflowFailure]:
        with self._invocation():
            parsed = parse_command(CreateShipmentCommand, command)
            if isinstance(parsed, Err):
                return self._rejected(parsed)
            cmd = parsed.value

            pipeline = (
                guard(lambda: self._orders.find_by_id(cmd.order_id), "failed to load order")
                .chain_result(lambda order: require(
                    order, lambda: not_found(f"order {cmd.order_id} not found")
                ))
                .chain_result(_require_paid)
                .chain(lambda _: guard(
                    lambda: self._shippings.find_by_order_id(cmd.order_id),
                    "failed to look up existing shipment",
                ))
                .chain_result(lambda existing: _require_no_shipment(existing, cmd.order_id))
                .chain_result(lambda _: allocate_id(self._shippings.next_id, "a shipping id"))
                .chain_result(lambda shipping_id: attempt(
                    lambda: create_shipping(
                        cmd.order_id,
                        cmd.shipping_address,
                        cmd.method,
                        shipping_id=shipping_id,
                        lead_days=self._lead_days,
                        clock=self._clock,
                    ),
                    "repository returned an unusable shipping id",
                ))
                .chain(self._save)
            )
            return await self._finish(
                pipeline, order_id=cmd.order_id, method=cmd.method.value
            )

    def _save(self, shipping: Shipping) -> AsyncResult[ShippingId, WorkflowFailure]:
        return guard(
            lambda: self._shippings.save(shipping), "failed to save shipment"
        ).map(lambda _: ShippingId(shipping.id))

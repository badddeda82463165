"""Pay order: PLACED -> PAID, persist, announce ``order_paid``."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from order_shipping.application.base import CommandHandler, guard, require
from order_shipping.application.commands import PayOrderCommand, parse_command
from order_shipping.application.interfaces import IEventBus, IOrderRepository
from order_shipping.core.clock import DEFAULT_CLOCK, IClock
from order_shipping.core.result import AsyncResult, Err, Result
from order_shipping.domain.events import OrderPaid
from order_shipping.domain.failures import WorkflowFailure, not_found
from order_shipping.domain.order import Order
from order_shipping.domain.order_transitions import mark_order_paid
from order_shipping.domain.value_objects import OrderId


class PayOrderHandler(CommandHandler):
    command_name = "pay_order"

    def __init__(
        self,
        orders: IOrderRepository,
        events: IEventBus,
        *,
        clock: IClock = DEFAULT_CLOCK,
    ) -> None:
        super().__init__(clock=clock)
        self._orders = orders
        self._events = events

    async def __call__(
        self, command: PayOrderCommand | Mapping[str, Any]
    ) -> Result[OrderId, WorkflowFailure]:
        with self._invocation() as correlation_id:
            parsed = parse_command(PayOrderCommand, command)
            if isinstance(parsed, Err):
                return self._rejected(parsed)
            order_id = parsed.value.order_id

            pipeline = (
                guard(lambda: self._orders.find_by_id(order_id), "failed to load order")
                .chain_result(lambda order: require(
                    order, lambda: not_found(f"order {order_id} not found")
                ))
                .chain(self._pay)
                .chain(lambda paid: guard(
                    lambda: self._events.publish(OrderPaid(
                        aggregate_id=paid.id,
                        occurred_at=self._clock.now(),
                        correlation_id=correlation_id,
                    )),
                    "failed to publish order_paid",
                ))
                .map(lambda _: OrderId(order_id))
            )
            return await self._finish(pipeline, order_id=order_id)

    def _pay(self, order: Order) -> AsyncResult[Order, WorkflowFailure]:
        return AsyncResult.from_result(
            mark_order_paid(order, clock=self._clock)
        ).chain(lambda paid: guard(
            lambda: self._orders.save(paid, expected_updated_at=order.updated_at),
            "failed to save order",
        ).map(lambda _: paid))

"""Place order: build a draft, add every line, place it, persist, announce."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from order_shipping.application.base import (
    CommandHandler,
    allocate_id,
    attempt,
    guard,
)
from order_shipping.application.commands import PlaceOrderCommand, parse_command
from order_shipping.application.interfaces import IEventBus, IOrderRepository
from order_shipping.core.clock import DEFAULT_CLOCK, IClock
from order_shipping.core.result import AsyncResult, Err, Result, try_fold
from order_shipping.domain.events import OrderPlaced
from order_shipping.domain.failures import WorkflowFailure, business_rule_violation
from order_shipping.domain.order import Order
from order_shipping.domain.order_transitions import (
    add_order_line,
    create_order,
    place_order,
)
from order_shipping.domain.value_objects import (
    OrderId,
    OrderLine,
    create_customer_id,
)


class PlaceOrderHandler(CommandHandler):
    """validate -> draft -> add lines -> place -> save -> publish ``order_placed``.

    Resolves to ``Ok(order_id)``.  A failing line stops the fold and is
    reported as ``business_rule_violation``; later lines are not tried.
    """

    command_name = "place_order"

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
        self, command: PlaceOrderCommand | Mapping[str, Any]
    ) -> Result[OrderId, WorkflowFailure]:
        with self._invocation() as correlation_id:
            parsed = parse_command(PlaceOrderCommand, command)
            if isinstance(parsed, Err):
                return self._rejected(parsed)
            cmd = parsed.value
            customer_id = cmd.customer_id or create_customer_id()

            pipeline = (
                AsyncResult.from_result(allocate_id(self._orders.next_id, "an order id"))
                .chain_result(lambda order_id: attempt(
                    lambda: create_order(customer_id, order_id=order_id, clock=self._clock),
                    "repository returned an unusable order id",
                ))
                .chain_result(lambda draft: self._add_lines(draft, cmd.lines))
                .chain_result(lambda draft: place_order(draft, clock=self._clock))
                .chain(lambda order: guard(
                    lambda: self._orders.save(order), "failed to save order"
                ).map(lambda _: order))
                .chain(lambda order: self._publish(order, correlation_id))
            )
            return await self._finish(pipeline, lines=len(cmd.lines))

    def _add_lines(
        self, draft: Order, lines: tuple[OrderLine, ...]
    ) -> Result[Order, WorkflowFailure]:
        return try_fold(
            lines,
            draft,
            lambda order, line: add_order_line(order, line, clock=self._clock),
        ).map_error(lambda failure: business_rule_violation(failure.message))

    def _publish(
        self, order: Order, correlation_id: str
    ) -> AsyncResult[OrderId, WorkflowFailure]:
        event = OrderPlaced(
            aggregate_id=order.id,
            occurred_at=self._clock.now(),
            correlation_id=correlation_id,
            customer_id=order.customer_id,
            total_amount=order.total_amount,
        )
        return guard(
            lambda: self._events.publish(event), "failed to publish order_placed"
        ).map(lambda _: OrderId(order.id))

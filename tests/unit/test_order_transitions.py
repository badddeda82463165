"""Order aggregate: schema invariants and pure transitions."""

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from order_shipping.core.enums import ErrorKind, OrderStatusType
from order_shipping.core.result import Err, Ok
from order_shipping.domain.order import (
    TERMINAL_ORDER_STATUSES,
    can_transition,
    validate_order,
)
from order_shipping.domain.order_transitions import (
    add_order_line,
    cancel_order,
    create_order,
    mark_order_paid,
    place_order,
)
from order_shipping.domain.value_objects import OrderLine


class TestCreateOrder:
    def test_new_order_is_empty_draft(self, sim_clock):
        order = create_order("cust-1", clock=sim_clock)
        assert order.status_type == OrderStatusType.DRAFT
        assert order.lines == ()
        assert order.total_amount == Decimal("0")
        assert order.created_at == order.updated_at == sim_clock.now()

    def test_uses_given_id(self, sim_clock):
        assert create_order("cust-1", order_id="o-9", clock=sim_clock).id == "o-9"


class TestAddOrderLine:
    def test_total_is_sum_of_subtotals(self, draft_order, book_line, pen_line, sim_clock):
        order = add_order_line(draft_order, book_line, clock=sim_clock).unwrap()
        order = add_order_line(order, pen_line, clock=sim_clock).unwrap()
        assert order.total_amount == Decimal("5800.00")
        assert len(order.lines) == 2

    def test_input_snapshot_is_unchanged(self, draft_order, book_line, sim_clock):
        add_order_line(draft_order, book_line, clock=sim_clock)
        assert draft_order.lines == ()
        assert draft_order.total_amount == Decimal("0")

    def test_duplicate_product_is_rejected(self, draft_order, book_line, sim_clock):
        order = add_order_line(draft_order, book_line, clock=sim_clock).unwrap()
        result = add_order_line(order, book_line, clock=sim_clock)
        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.BUSINESS_RULE_VIOLATION

    def test_only_draft_accepts_lines(self, placed_order, sim_clock):
        extra = OrderLine(
            product_id="prod-new", product_name="New", unit_price="1", quantity=1
        )
        result = add_order_line(placed_order, extra, clock=sim_clock)
        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.BUSINESS_RULE_VIOLATION

    def test_total_above_price_ceiling_fails_validation(self, draft_order, sim_clock):
        line = OrderLine(
            product_id="p", product_name="Car", unit_price="999999.99", quantity=2
        )
        result = add_order_line(draft_order, line, clock=sim_clock)
        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.VALIDATION_ERROR

    def test_updated_at_moves_forward(self, draft_order, book_line, sim_clock):
        sim_clock.advance(seconds=30)
        order = add_order_line(draft_order, book_line, clock=sim_clock).unwrap()
        assert order.updated_at > order.created_at


class TestPlaceOrder:
    def test_draft_with_lines_is_placed(self, draft_order, book_line, sim_clock):
        order = add_order_line(draft_order, book_line, clock=sim_clock).unwrap()
        placed = place_order(order, clock=sim_clock).unwrap()
        assert placed.status_type == OrderStatusType.PLACED
        assert placed.status.placed_at == sim_clock.now()

    def test_empty_draft_cannot_be_placed(self, draft_order, sim_clock):
        result = place_order(draft_order, clock=sim_clock)
        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.BUSINESS_RULE_VIOLATION
        assert "no lines" in result.error.message

    def test_placed_cannot_be_placed_again(self, placed_order, sim_clock):
        result = place_order(placed_order, clock=sim_clock)
        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.BUSINESS_RULE_VIOLATION


class TestMarkOrderPaid:
    def test_placed_becomes_paid(self, placed_order, sim_clock):
        paid = mark_order_paid(placed_order, clock=sim_clock).unwrap()
        assert paid.status_type == OrderStatusType.PAID
        assert paid.is_terminal

    @pytest.mark.parametrize("fixture", ["draft_order", "paid_order"])
    def test_other_states_are_rejected(self, fixture, request, sim_clock):
        order = request.getfixturevalue(fixture)
        result = mark_order_paid(order, clock=sim_clock)
        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.BUSINESS_RULE_VIOLATION


class TestCancelOrder:
    @pytest.mark.parametrize("fixture", ["draft_order", "placed_order"])
    def test_cancellable_states(self, fixture, request, sim_clock):
        order = request.getfixturevalue(fixture)
        cancelled = cancel_order(order, "customer request", clock=sim_clock).unwrap()
        assert cancelled.status_type == OrderStatusType.CANCELLED
        assert cancelled.status.reason == "customer request"

    def test_paid_cannot_be_cancelled(self, paid_order, sim_clock):
        result = cancel_order(paid_order, "too late", clock=sim_clock)
        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.BUSINESS_RULE_VIOLATION

    def test_reason_must_not_be_empty(self, draft_order, sim_clock):
        result = cancel_order(draft_order, "", clock=sim_clock)
        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.VALIDATION_ERROR


class TestOrderSchema:
    def test_round_trip_of_valid_snapshot(self, placed_order):
        assert validate_order(placed_order) == Ok(placed_order)

    def test_total_mismatch_is_rejected(self, placed_order):
        data = {**placed_order.model_dump(), "total_amount": Decimal("1")}
        result = validate_order(data)
        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.VALIDATION_ERROR
        assert "total_amount" in result.error.message

    def test_status_payload_must_match_tag(self, draft_order):
        data = {**draft_order.model_dump(), "status": {"type": "placed"}}
        assert isinstance(validate_order(data), Err)

    def test_extra_status_fields_are_rejected(self, draft_order, sim_clock):
        data = {
            **draft_order.model_dump(),
            "status": {"type": "draft", "placed_at": sim_clock.now()},
        }
        assert isinstance(validate_order(data), Err)

    def test_placed_order_needs_lines(self, draft_order, sim_clock):
        data = {
            **draft_order.model_dump(),
            "status": {"type": "placed", "placed_at": sim_clock.now()},
        }
        assert isinstance(validate_order(data), Err)

    def test_snapshot_is_frozen(self, draft_order):
        with pytest.raises(ValidationError):
            draft_order.customer_id = "other"


class TestOrderStateMap:
    def test_terminal_states(self):
        assert TERMINAL_ORDER_STATUSES == {
            OrderStatusType.PAID,
            OrderStatusType.CANCELLED,
        }

    def test_no_way_back_to_draft(self):
        for status in OrderStatusType:
            assert not can_transition(status, OrderStatusType.DRAFT)

"""Tests for the Order aggregate: totals, the status state machine and settlement."""

import pytest
from protean.exceptions import ValidationError

from storefront.exceptions import InvalidTransition, OrderClosed
from storefront.ordering.events import OrderPaid, OrderPlaced, OrderStatusChanged
from storefront.ordering.order import Order, OrderStatus, PaymentMethod

LINES = [
    {"product_id": "prod-rose", "name": "Rose", "unit_price": 10.0, "quantity": 3},
    {"product_id": "prod-fern", "name": "Fern", "unit_price": 7.25, "quantity": 2},
]


def _order(payment_method="cash", lines=LINES):
    order = Order.create(user_id="user-1", lines=lines, address="123 Main St", payment_method=payment_method)
    order._events.clear()
    return order


def _order_in(status):
    order = _order()
    path = {
        "pending": [],
        "processing": ["processing"],
        "shipped": ["processing", "shipped"],
        "delivered": ["processing", "delivered"],
        "cancelled": ["cancelled"],
    }[status]
    for step in path:
        order.transition_to(step)
    order._events.clear()
    return order


class TestOrderCreation:
    def test_total_is_sum_of_line_prices(self):
        order = _order()
        assert order.total_amount == 44.5
        assert order.line_items_total() == order.total_amount
        assert len(order.items) == 2

    def test_lines_keep_price_snapshot(self):
        order = _order()
        rose = next(item for item in order.items if item.product_id == "prod-rose")
        assert rose.name == "Rose"
        assert rose.unit_price == 10.0
        assert rose.quantity == 3

    def test_new_order_is_pending_and_unpaid(self):
        order = _order()
        assert order.status == OrderStatus.PENDING.value
        assert order.paid is False
        assert order.payment_method == PaymentMethod.CASH.value

    def test_gateway_order_is_unpaid_until_reconciled(self):
        order = _order(payment_method="gateway")
        assert order.paid is False

    def test_raises_order_placed(self):
        order = Order.create(user_id="user-1", lines=LINES, address="123 Main St")
        assert len(order._events) == 1
        event = order._events[0]
        assert isinstance(event, OrderPlaced)
        assert event.total_amount == 44.5
        assert event.payment_method == "cash"

    def test_unknown_payment_method_rejected(self):
        with pytest.raises(ValidationError) as exc:
            Order.create(user_id="user-1", lines=LINES, address="123 Main St", payment_method="cheque")
        assert "payment_method" in exc.value.messages

    def test_no_lines_rejected(self):
        with pytest.raises(ValidationError):
            Order.create(user_id="user-1", lines=[], address="123 Main St")

    def test_non_finite_unit_price_rejected(self):
        with pytest.raises(ValidationError) as exc:
            Order.create(
                user_id="user-1",
                lines=[{"product_id": "p", "name": "Rose", "unit_price": float("inf"), "quantity": 1}],
                address="123 Main St",
            )
        assert "total_amount" in exc.value.messages

    def test_zero_quantity_line_rejected(self):
        with pytest.raises(ValidationError):
            Order.create(
                user_id="user-1",
                lines=[{"product_id": "p", "name": "Rose", "unit_price": 1.0, "quantity": 0}],
                address="123 Main St",
            )


class TestStatusTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "processing"),
            ("pending", "cancelled"),
            ("processing", "shipped"),
            ("processing", "delivered"),
            ("processing", "cancelled"),
            ("shipped", "delivered"),
        ],
    )
    def test_allowed_transitions(self, current, target):
        order = _order_in(current)
        order.transition_to(target)
        assert order.status == target

    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "delivered"),
            ("pending", "shipped"),
            ("pending", "pending"),
            ("processing", "pending"),
            ("shipped", "processing"),
            ("shipped", "cancelled"),
            ("delivered", "cancelled"),
            ("delivered", "processing"),
            ("cancelled", "pending"),
            ("cancelled", "processing"),
        ],
    )
    def test_rejected_transitions(self, current, target):
        order = _order_in(current)
        with pytest.raises(InvalidTransition) as exc:
            order.transition_to(target)
        assert exc.value.current == current
        assert exc.value.requested == target
        assert order.status == current

    def test_unknown_status_rejected(self):
        order = _order()
        with pytest.raises(ValidationError) as exc:
            order.transition_to("lost")
        assert "status" in exc.value.messages

    def test_transition_raises_status_changed(self):
        order = _order()
        order.transition_to("processing")
        assert len(order._events) == 1
        event = order._events[0]
        assert isinstance(event, OrderStatusChanged)
        assert event.previous_status == "pending"
        assert event.new_status == "processing"

    def test_transition_updates_timestamp(self):
        order = _order()
        before = order.updated_at
        order.transition_to("processing")
        assert order.updated_at >= before


class TestDeliverySettlement:
    def test_delivery_forces_paid(self):
        order = _order_in("processing")
        order.transition_to("delivered")
        assert order.paid is True

        paid_events = [e for e in order._events if isinstance(e, OrderPaid)]
        assert len(paid_events) == 1
        assert paid_events[0].reason == "delivered"
        assert paid_events[0].amount == order.total_amount

    def test_delivery_of_paid_order_raises_no_second_payment(self):
        order = _order_in("shipped")
        order.mark_paid()
        order._events.clear()

        order.transition_to("delivered")

        assert order.paid is True
        assert not [e for e in order._events if isinstance(e, OrderPaid)]


class TestMarkPaid:
    def test_mark_paid(self):
        order = _order(payment_method="gateway")
        assert order.mark_paid() is True
        assert order.paid is True
        assert order._events[-1].reason == "gateway_verified"

    def test_mark_paid_twice_is_a_no_op(self):
        order = _order(payment_method="gateway")
        order.mark_paid()
        order._events.clear()

        assert order.mark_paid() is False
        assert order.paid is True
        assert order._events == []

    def test_cancelled_unpaid_order_is_closed(self):
        order = _order_in("cancelled")
        with pytest.raises(OrderClosed):
            order.mark_paid()
        assert order.paid is False

    def test_paid_then_cancelled_order_stays_paid(self):
        order = _order(payment_method="gateway")
        order.mark_paid()
        order.transition_to("cancelled")
        assert order.mark_paid() is False
        assert order.paid is True

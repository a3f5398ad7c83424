"""Order aggregate — the ledger record of a customer order.

State Machine:
    PENDING → PROCESSING | CANCELLED
    PROCESSING → SHIPPED | DELIVERED | CANCELLED
    SHIPPED → DELIVERED
    DELIVERED, CANCELLED: terminal

Line items carry the product name and unit price captured when the order was
placed; the total is computed from them once and never recomputed from the
catalogue. Reaching DELIVERED settles the order.
"""

import json
import math
from datetime import datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String

from storefront.domain import storefront
from storefront.exceptions import InvalidTransition, OrderClosed
from storefront.ordering.events import OrderPaid, OrderPlaced, OrderStatusChanged


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    CASH = "cash"
    GATEWAY = "gateway"


class PaymentReason(Enum):
    GATEWAY_VERIFIED = "gateway_verified"
    DELIVERED = "delivered"


# State machine transition map
MAX_ADDRESS_LENGTH = 500

_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# Payment methods that settle the moment the order is placed. Cash is
# collected on delivery and gateway payments settle through reconciliation.
_SETTLED_ON_PLACEMENT: set[PaymentMethod] = set()


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status: {value}"]}) from None


def parse_payment_method(value) -> PaymentMethod:
    try:
        return PaymentMethod(value)
    except ValueError:
        raise ValidationError({"payment_method": [f"Unsupported payment method: {value}"]}) from None


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderLineItem:
    """One product in an order, priced as it was at placement."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=100)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    user_id = Identifier(required=True)
    items = HasMany(OrderLineItem)
    total_amount = Float(required=True, min_value=0.0)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CASH.value)
    address = String(required=True, max_length=MAX_ADDRESS_LENGTH)
    paid = Boolean(default=False)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    created_at = DateTime(default=datetime.now)
    updated_at = DateTime(default=datetime.now)

    @invariant.post
    def total_must_be_finite(self):
        if self.total_amount is not None and not math.isfinite(self.total_amount):
            raise ValidationError({"total_amount": ["Order total must be a finite number"]})

    @classmethod
    def create(cls, user_id, lines, address, payment_method=PaymentMethod.CASH.value):
        """Build a pending order from reserved line snapshots.

        ``lines`` are mappings with product_id, name, unit_price and quantity.
        """
        method = parse_payment_method(payment_method)
        if not lines:
            raise ValidationError({"items": ["No items to order"]})

        now = datetime.now()
        total = round(sum(line["unit_price"] * line["quantity"] for line in lines), 2)

        order = cls(
            user_id=user_id,
            total_amount=total,
            payment_method=method.value,
            address=address,
            paid=method in _SETTLED_ON_PLACEMENT,
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        for line in lines:
            order.add_items(
                OrderLineItem(
                    product_id=line["product_id"],
                    name=line["name"],
                    unit_price=line["unit_price"],
                    quantity=line["quantity"],
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=order.id,
                user_id=user_id,
                items=json.dumps([dict(line) for line in lines]),
                total_amount=total,
                payment_method=method.value,
                placed_at=now,
            )
        )
        return order

    def line_items_total(self) -> float:
        return round(sum(item.line_total for item in self.items), 2)

    def transition_to(self, target):
        """Move the order along a forward edge of the state machine."""
        current = OrderStatus(self.status)
        requested = parse_status(target)

        if requested not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition(current.value, requested.value)

        now = datetime.now()
        self.status = requested.value
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=self.id,
                previous_status=current.value,
                new_status=requested.value,
                changed_at=now,
            )
        )

        if requested == OrderStatus.DELIVERED and not self.paid:
            self._settle(PaymentReason.DELIVERED, now)

    def mark_paid(self) -> bool:
        """Settle the order. Returns False when it was already paid."""
        if self.paid:
            return False
        if self.status == OrderStatus.CANCELLED.value:
            raise OrderClosed(self.id, self.status)

        self._settle(PaymentReason.GATEWAY_VERIFIED, datetime.now())
        return True

    def _settle(self, reason: PaymentReason, when: datetime):
        self.paid = True
        self.updated_at = when
        self.raise_(
            OrderPaid(
                order_id=self.id,
                amount=self.total_amount,
                reason=reason.value,
                paid_at=when,
            )
        )

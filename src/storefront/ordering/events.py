"""Domain events for the Order aggregate.

All events are versioned, immutable facts raised by the aggregate and
written to the event store when the unit of work commits.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A customer placed an order against reserved stock."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of line dicts
    total_amount = Float(required=True)
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    """Staff moved the order forward in its lifecycle."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderPaid:
    """The order was settled, either by a verified gateway payment or on delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(required=True)  # PaymentReason value
    paid_at = DateTime(required=True)

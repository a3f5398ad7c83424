"""Order lifecycle controller.

Coordinates placement across the inventory and the ledger:

1. Reject empty orders, a missing customer, blank or overlong addresses and
   unknown payment methods before any stock is touched.
2. Reserve stock for every line (all-or-nothing).
3. Record the order in the ledger. If that fails for any reason, including
   the caller being cancelled, the reservation is released before the error
   propagates.

Status changes are restricted to admins; reads are restricted to the owner
of the order or an admin.
"""

from contextlib import ExitStack
from dataclasses import asdict

import structlog
from protean.exceptions import ValidationError

from storefront.catalogue.store.port import CatalogStore
from storefront.exceptions import EmptyOrder, Forbidden, MissingAddress
from storefront.inventory.reservation import InventoryReservation, Reservation
from storefront.ordering.ledger import OrderLedger
from storefront.ordering.order import MAX_ADDRESS_LENGTH, Order, PaymentMethod, parse_payment_method
from storefront.principal import Principal, Role

logger = structlog.get_logger(__name__)


class OrderLifecycleController:
    def __init__(self, inventory: InventoryReservation, ledger: OrderLedger, catalog: CatalogStore) -> None:
        self.inventory = inventory
        self.ledger = ledger
        self.catalog = catalog

    def place_order(self, user_id, items, address, payment_method=PaymentMethod.CASH.value) -> Order:
        items = list(items or [])
        if not items:
            raise EmptyOrder()
        if user_id is None or not str(user_id).strip():
            raise ValidationError({"user_id": ["Customer is required"]})
        if address is None or not str(address).strip():
            raise MissingAddress()
        address = str(address).strip()
        if len(address) > MAX_ADDRESS_LENGTH:
            raise ValidationError({"address": [f"Address must be at most {MAX_ADDRESS_LENGTH} characters"]})
        method = parse_payment_method(payment_method)

        reservation = self.inventory.reserve(items)

        with ExitStack() as stack:
            stack.callback(self._compensate, reservation, user_id)
            order = self.ledger.create(
                user_id=user_id,
                lines=[asdict(line) for line in reservation.lines],
                address=address,
                payment_method=method.value,
            )
            stack.pop_all()

        logger.info(
            "Order placed",
            order_id=str(order.id),
            user_id=str(user_id),
            total_amount=order.total_amount,
        )
        return order

    def set_status(self, order_id, requested_status, acting_role) -> Order:
        if acting_role != Role.ADMIN.value:
            raise Forbidden("Only admins can change order status")
        return self.ledger.transition(order_id, requested_status)

    def get_order(self, order_id, principal: Principal) -> Order:
        order = self.ledger.get(order_id)
        if not principal.is_admin and str(order.user_id) != str(principal.user_id):
            raise Forbidden("Not allowed to view this order")
        return order

    def orders_for(self, principal: Principal) -> list[Order]:
        return self.ledger.for_user(principal.user_id)

    def search_orders(self, principal: Principal, status=None, date_from=None, date_to=None, limit=None):
        self._require_admin(principal)
        return self.ledger.search(status=status, date_from=date_from, date_to=date_to, limit=limit)

    def stats(self, principal: Principal) -> dict:
        self._require_admin(principal)
        return {"products": self.catalog.count_products(), **self.ledger.stats()}

    def _compensate(self, reservation: Reservation, user_id) -> None:
        logger.warning("Order placement failed after reservation, releasing stock", user_id=str(user_id))
        self.inventory.release(reservation)

    @staticmethod
    def _require_admin(principal: Principal) -> None:
        if not principal.is_admin:
            raise Forbidden("Admin access required")

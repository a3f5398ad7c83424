"""Order ledger — commands, handler and queries for persisted orders.

Mutations run as Protean commands processed synchronously, each inside its
own unit of work. ``OrderLedger`` is the facade the lifecycle controller and
payment reconciliation call; it returns loaded ``Order`` aggregates and
surfaces storage trouble as a retryable ``StorageFailure``.
"""

import json
from datetime import date, datetime, time

import structlog
from protean import handle
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.exceptions import OrderNotFound, StorageFailure
from storefront.ordering.order import MAX_ADDRESS_LENGTH, Order, parse_status

logger = structlog.get_logger(__name__)

_PAGE_SIZE = 100
_CONFLICT_ATTEMPTS = 3


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@storefront.command(part_of="Order")
class CreateOrder:
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of reserved line dicts
    address = String(required=True, max_length=MAX_ADDRESS_LENGTH)
    payment_method = String(required=True, max_length=20)


@storefront.command(part_of="Order")
class TransitionOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)


@storefront.command(part_of="Order")
class MarkOrderPaid:
    order_id = Identifier(required=True)


# ---------------------------------------------------------------------------
# Command Handler
# ---------------------------------------------------------------------------
def _load(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        raise OrderNotFound(order_id) from None


@storefront.command_handler(part_of=Order)
class OrderLedgerHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        lines = json.loads(command.items) if isinstance(command.items, str) else command.items
        order = Order.create(
            user_id=command.user_id,
            lines=lines,
            address=command.address,
            payment_method=command.payment_method,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)

    @handle(TransitionOrderStatus)
    def transition_order_status(self, command):
        order = _load(command.order_id)
        order.transition_to(command.status)
        current_domain.repository_for(Order).add(order)
        return str(order.id)

    @handle(MarkOrderPaid)
    def mark_order_paid(self, command):
        order = _load(command.order_id)
        if order.mark_paid():
            current_domain.repository_for(Order).add(order)
        return str(order.id)


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------
class OrderLedger:
    def create(self, user_id, lines, address, payment_method) -> Order:
        command = CreateOrder(
            user_id=user_id,
            items=json.dumps([dict(line) for line in lines]),
            address=address,
            payment_method=payment_method,
        )
        order_id = self._process(command)
        logger.info("Order recorded", order_id=order_id, user_id=str(user_id))
        return self.get(order_id)

    def transition(self, order_id, target_status) -> Order:
        self._process(TransitionOrderStatus(order_id=order_id, status=target_status))
        logger.info("Order status changed", order_id=str(order_id), status=target_status)
        return self.get(order_id)

    def mark_paid(self, order_id) -> Order:
        """Settle ``order_id``; repeated and concurrent calls are no-ops once paid.

        A write that loses a version race is retried against the fresh copy,
        which is already paid when the competing call was a duplicate.
        """
        for attempt in range(1, _CONFLICT_ATTEMPTS + 1):
            try:
                self._process(MarkOrderPaid(order_id=order_id), retry_conflicts=True)
                break
            except ExpectedVersionError:
                if attempt == _CONFLICT_ATTEMPTS:
                    logger.error("Order kept changing under mark_paid", order_id=str(order_id))
                    raise StorageFailure("Order ledger unavailable") from None
                logger.info("Order changed concurrently, retrying", order_id=str(order_id), attempt=attempt)
        return self.get(order_id)

    # -- Queries -------------------------------------------------------------
    def get(self, order_id) -> Order:
        return _load(order_id)

    def for_user(self, user_id) -> list[Order]:
        """Orders placed by ``user_id``, newest first."""
        return self._fetch_all(user_id=str(user_id))

    def search(self, status=None, date_from=None, date_to=None, limit=None) -> list[Order]:
        """Admin listing, newest first.

        Plain dates cover the whole day: ``date_from`` from midnight and
        ``date_to`` through its last moment.
        """
        filters = {}
        if status:
            filters["status"] = parse_status(status).value
        start = _as_datetime(date_from, time.min)
        end = _as_datetime(date_to, time.max)
        if start is not None:
            filters["created_at__gte"] = start
        if end is not None:
            filters["created_at__lte"] = end
        return self._fetch_all(limit=limit, **filters)

    def stats(self) -> dict:
        orders = self._fetch_all()
        revenue = sum(order.total_amount for order in orders if order.paid)
        return {"orders": len(orders), "revenue": round(revenue, 2)}

    # -- Internals -----------------------------------------------------------
    def _process(self, command, retry_conflicts=False):
        try:
            return current_domain.process(command, asynchronous=False)
        except (ValidationError, ObjectNotFoundError):
            raise
        except ExpectedVersionError:
            if retry_conflicts:
                raise
            logger.warning("Order changed concurrently", command=command.__class__.__name__)
            raise StorageFailure("Order ledger unavailable") from None
        except Exception as exc:
            logger.error(
                "Order ledger write failed",
                command=command.__class__.__name__,
                error=str(exc),
                exc_info=True,
            )
            raise StorageFailure("Order ledger unavailable") from exc

    @staticmethod
    def _fetch_all(limit=None, **filters) -> list[Order]:
        """Matching orders, newest first, stopping at ``limit`` when given."""
        dao = current_domain.repository_for(Order)._dao
        query = (dao.query.filter(**filters) if filters else dao.query).order_by("-created_at")
        if limit:
            return list(query.limit(limit).all().items)

        orders, offset = [], 0
        while True:
            page = query.offset(offset).limit(_PAGE_SIZE).all()
            orders.extend(page.items)
            if not page.has_next:
                return orders
            offset += _PAGE_SIZE


def _as_datetime(value, bound):
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, bound)
    raise ValidationError({"date": [f"Invalid date: {value}"]})

"""Inventory reservation.

Reserving is two-phase. Every requested product is first checked against the
catalogue without touching stock; only when the whole batch fits are the
store's conditional decrements applied. A decrement that loses a race to a
concurrent reservation rolls back the lines already taken in the same batch,
so a reservation is all-or-nothing. Rollback and release try every line even
when some fail, then report the products left short with
``StockRollbackIncomplete``.

``release`` is the compensation path used when a later step of order
placement fails.
"""

import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import structlog
from protean.exceptions import ValidationError

from storefront.catalogue.store.port import CatalogStore
from storefront.exceptions import InsufficientStock, ProductNotFound, StockRollbackIncomplete, StoreUnavailable

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReservedLine:
    """A committed decrement with the catalogue data captured at reservation time."""

    product_id: str
    name: str
    unit_price: float
    quantity: int


@dataclass
class Reservation:
    lines: list[ReservedLine]
    released: bool = False
    _released_lines: set[int] = field(default_factory=set, repr=False)

    @property
    def total_amount(self) -> float:
        return round(sum(line.unit_price * line.quantity for line in self.lines), 2)


class InventoryReservation:
    def __init__(self, store: CatalogStore, release_attempts: int = 3, backoff: float = 0.05) -> None:
        self.store = store
        self.release_attempts = max(1, release_attempts)
        self.backoff = backoff

    def reserve(self, items: Iterable[Mapping]) -> Reservation:
        requested = self._consolidate(items)

        # Phase 1: validate the whole batch before any stock moves
        lines = []
        for product_id, quantity in requested.items():
            product = self.store.get_product(product_id)
            if product is None:
                raise ProductNotFound(product_id)
            if product.stock < quantity:
                raise InsufficientStock(product_id, product.name, product.stock, quantity)
            lines.append(
                ReservedLine(
                    product_id=product_id,
                    name=product.name,
                    unit_price=product.price,
                    quantity=quantity,
                )
            )

        # Phase 2: commit; any failure returns the lines already taken
        committed = []
        try:
            for line in lines:
                if not self.store.conditional_decrement(line.product_id, line.quantity):
                    raise self._lost_race(line)
                committed.append(line)
        except BaseException as exc:
            pending = dict(reversed(list(enumerate(committed))))
            failures = self._return_stock(pending)
            # A cancellation keeps propagating as-is
            if failures and isinstance(exc, Exception):
                raise StockRollbackIncomplete([pending[index].product_id for index in failures]) from exc
            raise

        logger.debug("Stock reserved", lines=len(committed))
        return Reservation(lines=committed)

    def _lost_race(self, line: ReservedLine) -> InsufficientStock:
        current = self.store.get_product(line.product_id)
        available = current.stock if current is not None else 0
        logger.info(
            "Reservation lost a stock race",
            product_id=line.product_id,
            requested=line.quantity,
            available=available,
        )
        return InsufficientStock(line.product_id, line.name, available, line.quantity)

    def release(self, reservation: Reservation) -> None:
        """Return every reserved line to stock. Releasing twice is a no-op."""
        if reservation.released:
            return

        pending = {
            index: line for index, line in enumerate(reservation.lines) if index not in reservation._released_lines
        }
        failures = self._return_stock(pending)
        reservation._released_lines.update(set(pending) - set(failures))
        if failures:
            product_ids = [pending[index].product_id for index in failures]
            raise StockRollbackIncomplete(product_ids) from next(iter(failures.values()))

        reservation.released = True
        logger.info("Reservation released", lines=len(reservation.lines))

    def _return_stock(self, pending: dict[int, ReservedLine]) -> dict[int, StoreUnavailable]:
        """Increment every pending line back, carrying on past lines that fail."""
        failures = {}
        for index, line in pending.items():
            try:
                self._increment_with_retry(line)
            except StoreUnavailable as exc:
                failures[index] = exc
        return failures

    def _increment_with_retry(self, line: ReservedLine) -> None:
        for attempt in range(1, self.release_attempts + 1):
            try:
                self.store.increment(line.product_id, line.quantity)
                return
            except StoreUnavailable:
                if attempt == self.release_attempts:
                    logger.error(
                        "Failed to release reserved stock",
                        product_id=line.product_id,
                        quantity=line.quantity,
                        attempts=attempt,
                    )
                    raise
                time.sleep(self.backoff * 2 ** (attempt - 1))

    @staticmethod
    def _consolidate(items: Iterable[Mapping]) -> dict[str, int]:
        """Sum quantities per product, preserving first-seen order."""
        requested: dict[str, int] = {}
        for item in items:
            product_id = item.get("product_id")
            quantity = item.get("quantity")
            if not product_id:
                raise ValidationError({"product_id": ["Product is required"]})
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
                raise ValidationError({"quantity": ["Quantity must be a positive integer"]})
            product_id = str(product_id)
            requested[product_id] = requested.get(product_id, 0) + quantity

        if not requested:
            raise ValidationError({"items": ["No items to order"]})
        return requested

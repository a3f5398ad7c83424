"""In-process catalog store for development and testing.

Records live in a dict guarded by one lock. ``conditional_decrement`` checks
and writes under that lock, so concurrent reservations from worker threads
are linearized exactly like the SQL adapter's conditional UPDATE.
"""

import threading
from datetime import datetime

from protean.exceptions import ValidationError

from storefront.catalogue.product import EDITABLE_FIELDS, Product
from storefront.catalogue.store.port import CatalogStore
from storefront.exceptions import ProductNotFound


class MemoryCatalogStore(CatalogStore):
    def __init__(self) -> None:
        self._records: dict[str, dict] = {}
        self._lock = threading.Lock()

    def get_product(self, product_id: str) -> Product | None:
        with self._lock:
            record = self._records.get(str(product_id))
            record = dict(record) if record else None
        return Product.from_record(record) if record else None

    def conditional_decrement(self, product_id: str, quantity: int) -> bool:
        with self._lock:
            record = self._records.get(str(product_id))
            if record is None or record["stock"] < quantity:
                return False
            record["stock"] -= quantity
            record["updated_at"] = datetime.now()
            return True

    def increment(self, product_id: str, quantity: int) -> None:
        with self._lock:
            record = self._require(product_id)
            record["stock"] += quantity
            record["updated_at"] = datetime.now()

    def add_product(self, product: Product) -> None:
        record = product.to_record()
        with self._lock:
            if record["id"] in self._records:
                raise ValidationError({"id": [f"Product {record['id']} already exists"]})
            self._records[record["id"]] = record

    def save_product(self, product: Product) -> None:
        record = product.to_record()
        with self._lock:
            stored = self._require(record["id"])
            for field in EDITABLE_FIELDS:
                stored[field] = record[field]
            stored["updated_at"] = record["updated_at"]

    def set_stock(self, product_id: str, stock: int) -> None:
        if stock < 0:
            raise ValidationError({"stock": ["Stock cannot be negative"]})
        with self._lock:
            record = self._require(product_id)
            record["stock"] = stock
            record["updated_at"] = datetime.now()

    def remove_product(self, product_id: str) -> None:
        with self._lock:
            self._require(product_id)
            del self._records[str(product_id)]

    def list_products(self, category: str | None = None) -> list[Product]:
        with self._lock:
            records = [dict(r) for r in self._records.values() if category is None or r["category"] == category]
        records.sort(key=lambda r: r["created_at"])
        return [Product.from_record(r) for r in records]

    def count_products(self) -> int:
        with self._lock:
            return len(self._records)

    def _require(self, product_id) -> dict:
        record = self._records.get(str(product_id))
        if record is None:
            raise ProductNotFound(product_id)
        return record

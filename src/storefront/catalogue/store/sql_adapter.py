"""SQLAlchemy catalog store.

Stock decrements are a single conditional UPDATE::

    UPDATE products SET stock = stock - :q WHERE id = :id AND stock >= :q

and the affected row count decides the outcome, so the database linearizes
concurrent reservations. A CHECK constraint keeps stock non-negative even
for writes that bypass this adapter.
"""

from contextlib import contextmanager
from datetime import datetime

import structlog
from protean.exceptions import ValidationError
from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    func,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.pool import StaticPool

from storefront.catalogue.product import EDITABLE_FIELDS, Product
from storefront.catalogue.store.port import CatalogStore
from storefront.exceptions import ProductNotFound, StoreUnavailable

logger = structlog.get_logger(__name__)

metadata = MetaData()

products = Table(
    "products",
    metadata,
    Column("id", String(50), primary_key=True),
    Column("name", String(100), nullable=False),
    Column("category", String(20), nullable=False),
    Column("price", Float, nullable=False),
    Column("stock", Integer, nullable=False, default=0),
    Column("image_url", String(500)),
    Column("description", String(1000)),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
    CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
)


class SqlCatalogStore(CatalogStore):
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def from_url(cls, url: str) -> "SqlCatalogStore":
        """Build a store from a database URL and create the schema."""
        kwargs = {}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
            if url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
        store = cls(create_engine(url, **kwargs))
        store.create_schema()
        return store

    def create_schema(self) -> None:
        with self._unavailable_on_error():
            metadata.create_all(self.engine)

    def drop_schema(self) -> None:
        with self._unavailable_on_error():
            metadata.drop_all(self.engine)

    def get_product(self, product_id: str) -> Product | None:
        with self._unavailable_on_error(), self.engine.connect() as conn:
            row = conn.execute(select(products).where(products.c.id == str(product_id))).mappings().first()
        return Product.from_record(dict(row)) if row else None

    def conditional_decrement(self, product_id: str, quantity: int) -> bool:
        stmt = (
            products.update()
            .where(products.c.id == str(product_id))
            .where(products.c.stock >= quantity)
            .values(stock=products.c.stock - quantity, updated_at=datetime.now())
        )
        with self._unavailable_on_error(), self.engine.begin() as conn:
            updated = conn.execute(stmt).rowcount
        return updated == 1

    def increment(self, product_id: str, quantity: int) -> None:
        stmt = (
            products.update()
            .where(products.c.id == str(product_id))
            .values(stock=products.c.stock + quantity, updated_at=datetime.now())
        )
        with self._unavailable_on_error(), self.engine.begin() as conn:
            updated = conn.execute(stmt).rowcount
        if updated == 0:
            raise ProductNotFound(product_id)

    def add_product(self, product: Product) -> None:
        record = product.to_record()
        try:
            with self._unavailable_on_error(), self.engine.begin() as conn:
                conn.execute(products.insert().values(**record))
        except IntegrityError as exc:
            raise ValidationError({"id": [f"Product {record['id']} already exists"]}) from exc

    def save_product(self, product: Product) -> None:
        record = product.to_record()
        values = {field: record[field] for field in EDITABLE_FIELDS}
        values["updated_at"] = record["updated_at"]
        with self._unavailable_on_error(), self.engine.begin() as conn:
            updated = conn.execute(products.update().where(products.c.id == record["id"]).values(**values)).rowcount
        if updated == 0:
            raise ProductNotFound(record["id"])

    def set_stock(self, product_id: str, stock: int) -> None:
        if stock < 0:
            raise ValidationError({"stock": ["Stock cannot be negative"]})
        stmt = products.update().where(products.c.id == str(product_id)).values(stock=stock, updated_at=datetime.now())
        with self._unavailable_on_error(), self.engine.begin() as conn:
            updated = conn.execute(stmt).rowcount
        if updated == 0:
            raise ProductNotFound(product_id)

    def remove_product(self, product_id: str) -> None:
        with self._unavailable_on_error(), self.engine.begin() as conn:
            updated = conn.execute(products.delete().where(products.c.id == str(product_id))).rowcount
        if updated == 0:
            raise ProductNotFound(product_id)

    def list_products(self, category: str | None = None) -> list[Product]:
        stmt = select(products).order_by(products.c.created_at)
        if category is not None:
            stmt = stmt.where(products.c.category == category)
        with self._unavailable_on_error(), self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [Product.from_record(dict(row)) for row in rows]

    def count_products(self) -> int:
        with self._unavailable_on_error(), self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(products)).scalar_one()

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def _unavailable_on_error(self):
        """Re-raise driver connectivity failures as ``StoreUnavailable``."""
        try:
            yield
        except OperationalError as exc:
            logger.warning("Catalog store unavailable", error=str(exc.orig))
            raise StoreUnavailable(str(exc.orig)) from exc

"""Catalog store port (abstract interface).

The catalog store is the single owner of product records and their stock
counters. Every stock decrement goes through ``conditional_decrement``,
which checks and writes in one linearizable step; callers never read stock
and write it back.

Adapters:
- MemoryCatalogStore for development and testing
- SqlCatalogStore for anything that needs a real database
"""

from abc import ABC, abstractmethod

from storefront.catalogue.product import Product


class CatalogStore(ABC):
    """Abstract catalog store interface."""

    @abstractmethod
    def get_product(self, product_id: str) -> Product | None:
        """Return the product, or None when it does not exist."""
        ...

    @abstractmethod
    def conditional_decrement(self, product_id: str, quantity: int) -> bool:
        """Decrement stock by ``quantity`` only if at least that much is on hand.

        Returns False, leaving stock untouched, when the product is missing or
        holds less than ``quantity``.
        """
        ...

    @abstractmethod
    def increment(self, product_id: str, quantity: int) -> None:
        """Add ``quantity`` back to a product's stock."""
        ...

    @abstractmethod
    def add_product(self, product: Product) -> None:
        """Insert a new product, stock included."""
        ...

    @abstractmethod
    def save_product(self, product: Product) -> None:
        """Persist every field of an existing product except stock."""
        ...

    @abstractmethod
    def set_stock(self, product_id: str, stock: int) -> None:
        """Overwrite stock with an absolute value (admin correction)."""
        ...

    @abstractmethod
    def remove_product(self, product_id: str) -> None:
        ...

    @abstractmethod
    def list_products(self, category: str | None = None) -> list[Product]:
        ...

    @abstractmethod
    def count_products(self) -> int:
        ...

    def close(self) -> None:  # noqa: B027
        """Release any resources held by the store."""

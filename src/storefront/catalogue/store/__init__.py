"""Catalog store factory.

Provides get_catalog_store() / set_catalog_store() to swap implementations:
- MemoryCatalogStore for development and testing
- SqlCatalogStore when a catalog database is configured
"""

from storefront.catalogue.store.memory_adapter import MemoryCatalogStore
from storefront.catalogue.store.port import CatalogStore

_current_store: CatalogStore | None = None


def get_catalog_store() -> CatalogStore:
    """Return the current catalog store. Defaults to MemoryCatalogStore."""
    global _current_store
    if _current_store is None:
        _current_store = MemoryCatalogStore()
    return _current_store


def set_catalog_store(store: CatalogStore) -> None:
    """Override the active catalog store."""
    global _current_store
    _current_store = store


def reset_catalog_store() -> None:
    """Reset to the default store."""
    global _current_store
    _current_store = None

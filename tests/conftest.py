import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Initialize the storefront domain once; each test pushes its own domain
    context (see ``run_around_tests``).
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from storefront.domain import storefront

    storefront.init()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Push a domain context and clean up infrastructure after every test"""
    from storefront.catalogue.store import reset_catalog_store, set_catalog_store
    from storefront.catalogue.store.memory_adapter import MemoryCatalogStore
    from storefront.domain import storefront

    set_catalog_store(MemoryCatalogStore())

    with storefront.domain_context():
        yield

        from protean import current_domain

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Clear all brokers
        for _, broker in current_domain.brokers.items():
            broker._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()

    reset_catalog_store()


@pytest.fixture()
def catalog():
    """The catalog store the command handlers resolve for this test."""
    from storefront.catalogue.store import get_catalog_store

    return get_catalog_store()


@pytest.fixture()
def add_product(catalog):
    """Factory: put a product straight into the catalog store and return its id."""
    from storefront.catalogue.product import Product

    def _add(name="Red Rose", category="flower", price=10.0, stock=5, **kwargs):
        product = Product.create(name=name, category=category, price=price, stock=stock, **kwargs)
        catalog.add_product(product)
        return str(product.id)

    return _add

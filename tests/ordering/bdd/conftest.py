"""Shared BDD fixtures and step definitions for ordering."""

import pytest
from pytest_bdd import given, parsers

from storefront.exceptions import StorageFailure
from storefront.inventory.reservation import InventoryReservation
from storefront.ordering.ledger import OrderLedger
from storefront.ordering.lifecycle import OrderLifecycleController


class FailingLedger(OrderLedger):
    def create(self, user_id, lines, address, payment_method):
        raise StorageFailure("ledger unavailable")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def products():
    """Product ids by name."""
    return {}


@pytest.fixture()
def outcome():
    """Container for the placed order or the captured error."""
    return {"order": None, "exc": None}


@pytest.fixture()
def controller(catalog):
    return OrderLifecycleController(InventoryReservation(catalog, backoff=0), OrderLedger(), catalog)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced {price:f} with {stock:d} in stock'))
def product_in_stock(add_product, products, name, price, stock):
    products[name] = add_product(name=name, price=price, stock=stock)


@given("the order ledger is failing")
def failing_ledger(controller):
    controller.ledger = FailingLedger()


@given(parsers.cfparse('a pending cash order for "{user}"'), target_fixture="order_id")
def pending_cash_order(controller, add_product, user):
    product_id = add_product(name="Tulip", price=15.0, stock=10)
    order = controller.place_order(user, [{"product_id": product_id, "quantity": 1}], "123 Main St", "cash")
    return order.id

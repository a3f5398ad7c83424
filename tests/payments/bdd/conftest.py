"""Shared BDD fixtures and step definitions for payments."""

import pytest
from pytest_bdd import given, parsers

from storefront.ordering.ledger import OrderLedger
from storefront.payments.gateway.fake_adapter import FakeGateway
from storefront.payments.reconciliation import PaymentReconciliation


@pytest.fixture()
def merchant_secret():
    return "merchant-secret"


@pytest.fixture()
def ledger():
    return OrderLedger()


@pytest.fixture()
def reconciliation(ledger, merchant_secret):
    return PaymentReconciliation(gateway=FakeGateway(), secret=merchant_secret, ledger=ledger)


@pytest.fixture()
def outcome():
    return {"verified": None}


@given(parsers.cfparse('an unpaid gateway order for "{user}"'), target_fixture="order_id")
def unpaid_gateway_order(ledger, user):
    order = ledger.create(
        user_id=user,
        lines=[{"product_id": "prod-orchid", "name": "Orchid", "unit_price": 450.0, "quantity": 1}],
        address="123 Main St",
        payment_method="gateway",
    )
    return order.id


@given("the order was cancelled")
def order_cancelled(ledger, order_id):
    ledger.transition(order_id, "cancelled")

"""BDD tests for order placement."""

from protean.utils.globals import current_domain
from pytest_bdd import parsers, scenarios, then, when

from storefront.exceptions import EmptyOrder, InsufficientStock, StorageFailure
from storefront.ordering.order import Order

scenarios("features/order_placement.feature")


def _place(controller, outcome, user, items, address):
    try:
        outcome["order"] = controller.place_order(user, items, address)
    except Exception as exc:
        outcome["exc"] = exc


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(
    parsers.cfparse(
        '"{user}" orders {first_qty:d} of "{first}" and {second_qty:d} of "{second}" for delivery to "{address}"'
    )
)
def order_two_products(controller, products, outcome, user, first_qty, first, second_qty, second, address):
    items = [
        {"product_id": products[first], "quantity": first_qty},
        {"product_id": products[second], "quantity": second_qty},
    ]
    _place(controller, outcome, user, items, address)


@when(parsers.cfparse('"{user}" orders nothing for delivery to "{address}"'))
def order_nothing(controller, outcome, user, address):
    _place(controller, outcome, user, [], address)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the order is placed")
def order_placed(outcome):
    assert outcome["exc"] is None
    assert outcome["order"] is not None


@then(parsers.cfparse("the order total is {total:f}"))
def order_total_is(outcome, total):
    assert outcome["order"].total_amount == total


@then("the order is pending and unpaid")
def order_pending_unpaid(outcome):
    assert outcome["order"].status == "pending"
    assert outcome["order"].paid is False


@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def product_has_stock(catalog, products, name, stock):
    assert catalog.get_product(products[name]).stock == stock


@then(parsers.cfparse('the order is rejected for insufficient stock of "{name}"'))
def rejected_insufficient(outcome, name):
    assert isinstance(outcome["exc"], InsufficientStock)
    assert outcome["exc"].product_name == name


@then("the order is rejected as empty")
def rejected_empty(outcome):
    assert isinstance(outcome["exc"], EmptyOrder)


@then("the order is rejected as a storage failure")
def rejected_storage_failure(outcome):
    assert isinstance(outcome["exc"], StorageFailure)


@then("no order was recorded")
def no_order_recorded():
    assert current_domain.repository_for(Order)._dao.query.all().items == []

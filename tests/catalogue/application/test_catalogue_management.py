"""Application tests for catalogue management handlers."""

import pytest
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.catalogue.management import CreateProduct, RemoveProduct, RestockProduct, UpdateProduct
from storefront.exceptions import ProductNotFound


def _create_product(**overrides):
    defaults = {"name": "Red Rose", "category": "flower", "price": 25.0, "stock": 10}
    defaults.update(overrides)
    return current_domain.process(CreateProduct(**defaults), asynchronous=False)


class TestCreateProductHandler:
    def test_create_product(self, catalog):
        product_id = _create_product()
        product = catalog.get_product(product_id)
        assert product.name == "Red Rose"
        assert product.stock == 10
        assert catalog.count_products() == 1

    def test_stock_defaults_to_zero(self, catalog):
        product_id = _create_product(stock=None)
        assert catalog.get_product(product_id).stock == 0

    def test_invalid_category_rejected(self, catalog):
        with pytest.raises(ValidationError):
            _create_product(category="cactus")
        assert catalog.count_products() == 0


class TestUpdateProductHandler:
    def test_absent_fields_untouched(self, catalog):
        product_id = _create_product(description="Fresh cut")
        current_domain.process(UpdateProduct(product_id=product_id, changes={"name": "White Rose"}), asynchronous=False)

        product = catalog.get_product(product_id)
        assert product.name == "White Rose"
        assert product.price == 25.0
        assert product.description == "Fresh cut"
        assert product.stock == 10

    def test_zero_price_applies(self, catalog):
        product_id = _create_product()
        current_domain.process(UpdateProduct(product_id=product_id, changes={"price": 0}), asynchronous=False)
        assert catalog.get_product(product_id).price == 0

    def test_stock_correction(self, catalog):
        product_id = _create_product(stock=10)
        current_domain.process(UpdateProduct(product_id=product_id, changes={"stock": 0}), asynchronous=False)
        assert catalog.get_product(product_id).stock == 0

    def test_negative_stock_rejected(self, catalog):
        product_id = _create_product(stock=10)
        with pytest.raises(ValidationError):
            current_domain.process(UpdateProduct(product_id=product_id, changes={"stock": -3}), asynchronous=False)
        assert catalog.get_product(product_id).stock == 10

    def test_empty_update_is_a_no_op(self, catalog):
        product_id = _create_product()
        current_domain.process(UpdateProduct(product_id=product_id, changes={}), asynchronous=False)
        assert catalog.get_product(product_id).name == "Red Rose"

    def test_unknown_product(self):
        with pytest.raises(ProductNotFound):
            current_domain.process(UpdateProduct(product_id="missing", changes={"name": "X"}), asynchronous=False)


class TestRestockAndRemove:
    def test_restock_increments(self, catalog):
        product_id = _create_product(stock=2)
        current_domain.process(RestockProduct(product_id=product_id, quantity=5), asynchronous=False)
        assert catalog.get_product(product_id).stock == 7

    def test_restock_requires_positive_quantity(self):
        with pytest.raises(ValidationError):
            RestockProduct(product_id="any", quantity=0)

    def test_remove(self, catalog):
        product_id = _create_product()
        current_domain.process(RemoveProduct(product_id=product_id), asynchronous=False)
        assert catalog.get_product(product_id) is None

    def test_remove_unknown_product(self):
        with pytest.raises(ProductNotFound):
            current_domain.process(RemoveProduct(product_id="missing"), asynchronous=False)

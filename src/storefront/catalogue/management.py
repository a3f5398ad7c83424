"""Catalogue management — admin commands and handler.

Product records live in the catalog store, so the handler loads and saves
through ``get_catalog_store()`` instead of a Protean repository. Stock is
only ever touched through the store's own increment and set operations.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Dict, Float, Identifier, Integer, String

from storefront.catalogue.product import Product
from storefront.catalogue.store import get_catalog_store
from storefront.domain import storefront
from storefront.exceptions import ProductNotFound

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Product")
class CreateProduct:
    name = String(required=True, max_length=100)
    category = String(required=True, max_length=20)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    image_url = String(max_length=500)
    description = String(max_length=1000)


@storefront.command(part_of="Product")
class UpdateProduct:
    product_id = Identifier(required=True)
    changes = Dict()  # only the fields the caller supplied


@storefront.command(part_of="Product")
class RestockProduct:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Product")
class RemoveProduct:
    product_id = Identifier(required=True)


@storefront.command_handler(part_of=Product)
class CatalogueManagementHandler:
    @handle(CreateProduct)
    def create_product(self, command):
        product = Product.create(
            name=command.name,
            category=command.category,
            price=command.price,
            stock=command.stock,
            image_url=command.image_url,
            description=command.description,
        )
        get_catalog_store().add_product(product)

        logger.info("Product created", product_id=str(product.id), stock=product.stock)
        return str(product.id)

    @handle(UpdateProduct)
    def update_product(self, command):
        store = get_catalog_store()
        product = store.get_product(command.product_id)
        if product is None:
            raise ProductNotFound(command.product_id)

        supplied = command.changes or {}
        changes = dict(supplied)
        stock = changes.pop("stock", None)
        if "stock" in supplied and (not isinstance(stock, int) or isinstance(stock, bool) or stock < 0):
            raise ValidationError({"stock": ["Stock must be a non-negative integer"]})

        product.update_details(changes)
        store.save_product(product)
        if stock is not None:
            store.set_stock(command.product_id, stock)

        logger.info("Product updated", product_id=str(command.product_id), fields=sorted(supplied))
        return str(product.id)

    @handle(RestockProduct)
    def restock_product(self, command):
        get_catalog_store().increment(command.product_id, command.quantity)
        logger.info("Product restocked", product_id=str(command.product_id), quantity=command.quantity)

    @handle(RemoveProduct)
    def remove_product(self, command):
        get_catalog_store().remove_product(command.product_id)
        logger.info("Product removed", product_id=str(command.product_id))

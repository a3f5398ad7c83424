"""Product aggregate.

Products are validated as a Protean aggregate but persisted by the catalog
store (see ``storefront.catalogue.store``), which owns the stock counter and
its conditional decrement. ``to_record`` / ``from_record`` convert between
the aggregate and the plain record the store keeps.
"""

import math
from datetime import datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Integer, String

from storefront.domain import storefront


class ProductCategory(Enum):
    FLOWER = "flower"
    GREEN_LEAF = "green_leaf"


# Fields an admin may edit through update_details. Stock is corrected
# through the store so it never goes through a read-modify-write here.
EDITABLE_FIELDS = ("name", "category", "price", "image_url", "description")


@storefront.aggregate
class Product:
    """A sellable item and its on-hand stock."""

    name = String(required=True, max_length=100)
    category = String(required=True, choices=ProductCategory)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    image_url = String(max_length=500)
    description = String(max_length=1000)
    created_at = DateTime(default=datetime.now)
    updated_at = DateTime(default=datetime.now)

    @invariant.post
    def price_must_be_finite(self):
        if self.price is not None and not math.isfinite(self.price):
            raise ValidationError({"price": ["Price must be a finite number"]})

    @classmethod
    def create(cls, name, category, price, stock=0, image_url=None, description=None):
        now = datetime.now()
        return cls(
            name=name,
            category=category,
            price=price,
            stock=stock if stock is not None else 0,
            image_url=image_url,
            description=description,
            created_at=now,
            updated_at=now,
        )

    def update_details(self, changes):
        """Apply only the supplied fields.

        A key that is present is applied even when its value is falsy, so
        ``price=0`` or ``description=""`` take effect; absent keys are left
        untouched.
        """
        unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError({field: ["Field cannot be updated"] for field in unknown})

        for field in EDITABLE_FIELDS:
            if field in changes:
                setattr(self, field, changes[field])

        self.updated_at = datetime.now()

    def to_record(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "category": self.category,
            "price": self.price,
            "stock": self.stock,
            "image_url": self.image_url,
            "description": self.description,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_record(cls, record) -> "Product":
        return cls(
            id=record["id"],
            name=record["name"],
            category=record["category"],
            price=record["price"],
            stock=record["stock"],
            image_url=record.get("image_url"),
            description=record.get("description"),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
        )

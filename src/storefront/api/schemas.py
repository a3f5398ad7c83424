"""Pydantic request/response schemas for the Storefront API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands and aggregates.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------
class CreateProductRequest(BaseModel):
    name: str
    category: str
    price: float = Field(allow_inf_nan=False)
    stock: int = 0
    image_url: str | None = None
    description: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Red Rose",
                    "category": "flower",
                    "price": 120.0,
                    "stock": 25,
                }
            ]
        }
    }


class UpdateProductRequest(BaseModel):
    """Every field is optional; only fields present in the body are applied."""

    name: str | None = None
    category: str | None = None
    price: float | None = Field(default=None, allow_inf_nan=False)
    stock: int | None = None
    image_url: str | None = None
    description: str | None = None


class RestockRequest(BaseModel):
    quantity: int = Field(ge=1)


class ProductResponse(BaseModel):
    id: str
    name: str
    category: str
    price: float
    stock: int
    image_url: str | None = None
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_product(cls, product) -> "ProductResponse":
        return cls(**product.to_record())


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderItemRequest(BaseModel):
    product_id: str
    quantity: int


class PlaceOrderRequest(BaseModel):
    items: list[OrderItemRequest] = Field(default_factory=list)
    address: str | None = None
    payment_method: str = "cash"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "prod-001", "quantity": 2}],
                    "address": "123 Main St",
                    "payment_method": "cash",
                }
            ]
        }
    }


class UpdateOrderStatusRequest(BaseModel):
    status: str


class OrderLineResponse(BaseModel):
    product_id: str
    name: str
    unit_price: float
    quantity: int


class OrderResponse(BaseModel):
    id: str
    user_id: str
    items: list[OrderLineResponse]
    total_amount: float
    payment_method: str
    address: str
    paid: bool
    status: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        return cls(
            id=str(order.id),
            user_id=str(order.user_id),
            items=[
                OrderLineResponse(
                    product_id=str(item.product_id),
                    name=item.name,
                    unit_price=item.unit_price,
                    quantity=item.quantity,
                )
                for item in order.items
            ],
            total_amount=order.total_amount,
            payment_method=order.payment_method,
            address=order.address,
            paid=order.paid,
            status=order.status,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class CreateGatewayOrderRequest(BaseModel):
    amount: float = Field(allow_inf_nan=False)  # major units, e.g. rupees
    currency: str | None = None
    receipt: str | None = None


class GatewayOrderResponse(BaseModel):
    id: str
    amount: int  # minor units, e.g. paise
    currency: str
    receipt: str | None = None
    status: str | None = None


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str
    order_id: str


class VerifyPaymentResponse(BaseModel):
    success: bool
    message: str


# ---------------------------------------------------------------------------
# Admin / shared
# ---------------------------------------------------------------------------
class StatsResponse(BaseModel):
    products: int
    orders: int
    revenue: float


class StatusResponse(BaseModel):
    status: str = "ok"

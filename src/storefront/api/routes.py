"""FastAPI routes for the Storefront — catalogue, orders, payments and admin.

The acting principal is asserted by the upstream identity gateway through
the ``X-User-Id`` and ``X-User-Role`` headers. Domain errors propagate to
the exception handlers registered in ``storefront.app``.
"""

from datetime import date, datetime

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    CreateGatewayOrderRequest,
    CreateProductRequest,
    GatewayOrderResponse,
    OrderResponse,
    PlaceOrderRequest,
    ProductResponse,
    RestockRequest,
    StatsResponse,
    StatusResponse,
    UpdateOrderStatusRequest,
    UpdateProductRequest,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from storefront.catalogue.management import CreateProduct, RemoveProduct, RestockProduct, UpdateProduct
from storefront.domain import storefront
from storefront.exceptions import Forbidden, ProductNotFound
from storefront.payments.reconciliation import PaymentVerificationRecord, to_minor_units
from storefront.principal import Principal, Role
from storefront.services import Services


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_services(request: Request) -> Services:
    return request.app.state.services


def get_principal(
    x_user_id: str = Header(default=""),
    x_user_role: str = Header(default=Role.USER.value),
) -> Principal:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    role = x_user_role.lower()
    if role not in {r.value for r in Role}:
        raise Forbidden(f"Unknown role: {x_user_role}")
    return Principal(user_id=x_user_id, role=role)


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise Forbidden("Admin access required")
    return principal


def _parse_when(value: str | None, field: str) -> date | datetime | None:
    """Accept ``YYYY-MM-DD`` (whole day) or a full ISO timestamp."""
    if not value:
        return None
    try:
        return date.fromisoformat(value) if len(value) == 10 else datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError({field: [f"Invalid date: {value}"]}) from None


async def run_in_domain(func, *args, **kwargs):
    """Run blocking domain work on the threadpool inside its own domain context."""

    def call():
        with storefront.domain_context():
            return func(*args, **kwargs)

    return await run_in_threadpool(call)


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.get("", response_model=list[ProductResponse])
async def list_products(
    category: str | None = None,
    services: Services = Depends(get_services),
) -> list[ProductResponse]:
    def list_all():
        return [ProductResponse.from_product(p) for p in services.catalog.list_products(category=category)]

    return await run_in_domain(list_all)


@product_router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str, services: Services = Depends(get_services)) -> ProductResponse:
    def load():
        product = services.catalog.get_product(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return ProductResponse.from_product(product)

    return await run_in_domain(load)


@product_router.post("", status_code=201, response_model=ProductResponse)
async def create_product(
    body: CreateProductRequest,
    _: Principal = Depends(require_admin),
    services: Services = Depends(get_services),
) -> ProductResponse:
    def create():
        product_id = current_domain.process(CreateProduct(**body.model_dump()), asynchronous=False)
        return ProductResponse.from_product(services.catalog.get_product(product_id))

    return await run_in_domain(create)


@product_router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    body: UpdateProductRequest,
    _: Principal = Depends(require_admin),
    services: Services = Depends(get_services),
) -> ProductResponse:
    def update():
        command = UpdateProduct(
            product_id=product_id,
            changes=body.model_dump(exclude_unset=True),
        )
        current_domain.process(command, asynchronous=False)
        return ProductResponse.from_product(services.catalog.get_product(product_id))

    return await run_in_domain(update)


@product_router.post("/{product_id}/restock", response_model=ProductResponse)
async def restock_product(
    product_id: str,
    body: RestockRequest,
    _: Principal = Depends(require_admin),
    services: Services = Depends(get_services),
) -> ProductResponse:
    def restock():
        current_domain.process(RestockProduct(product_id=product_id, quantity=body.quantity), asynchronous=False)
        return ProductResponse.from_product(services.catalog.get_product(product_id))

    return await run_in_domain(restock)


@product_router.delete("/{product_id}", response_model=StatusResponse)
async def remove_product(product_id: str, _: Principal = Depends(require_admin)) -> StatusResponse:
    await run_in_domain(current_domain.process, RemoveProduct(product_id=product_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def place_order(
    body: PlaceOrderRequest,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> OrderResponse:
    def place():
        order = services.lifecycle.place_order(
            user_id=principal.user_id,
            items=[item.model_dump() for item in body.items],
            address=body.address,
            payment_method=body.payment_method,
        )
        return OrderResponse.from_order(order)

    return await run_in_domain(place)


@order_router.get("/my-orders", response_model=list[OrderResponse])
async def my_orders(
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> list[OrderResponse]:
    def own_orders():
        return [OrderResponse.from_order(o) for o in services.lifecycle.orders_for(principal)]

    return await run_in_domain(own_orders)


@order_router.get("", response_model=list[OrderResponse])
async def search_orders(
    status: str | None = None,
    date_from: str | None = Query(default=None, alias="from"),
    date_to: str | None = Query(default=None, alias="to"),
    limit: int | None = Query(default=None, ge=1),
    principal: Principal = Depends(require_admin),
    services: Services = Depends(get_services),
) -> list[OrderResponse]:
    start = _parse_when(date_from, "from")
    end = _parse_when(date_to, "to")

    def search():
        orders = services.lifecycle.search_orders(principal, status=status, date_from=start, date_to=end, limit=limit)
        return [OrderResponse.from_order(o) for o in orders]

    return await run_in_domain(search)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> OrderResponse:
    def load():
        return OrderResponse.from_order(services.lifecycle.get_order(order_id, principal))

    return await run_in_domain(load)


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    body: UpdateOrderStatusRequest,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> OrderResponse:
    def transition():
        order = services.lifecycle.set_status(order_id, body.status, acting_role=principal.role)
        return OrderResponse.from_order(order)

    return await run_in_domain(transition)


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/create-order", response_model=GatewayOrderResponse)
async def create_gateway_order(
    body: CreateGatewayOrderRequest,
    _: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> GatewayOrderResponse:
    ref = await run_in_domain(
        services.reconciliation.create_gateway_order,
        amount_minor_units=to_minor_units(body.amount),
        currency=body.currency,
        receipt_ref=body.receipt,
    )
    return GatewayOrderResponse(
        id=ref.gateway_order_id,
        amount=ref.amount_minor_units,
        currency=ref.currency,
        receipt=ref.receipt,
        status=ref.status,
    )


@payment_router.post("/verify", response_model=VerifyPaymentResponse)
async def verify_payment(
    body: VerifyPaymentRequest,
    _: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
):
    record = PaymentVerificationRecord(
        gateway_order_ref=body.razorpay_order_id,
        gateway_payment_ref=body.razorpay_payment_id,
        signature=body.razorpay_signature,
        local_order_id=body.order_id,
    )
    if await run_in_domain(services.reconciliation.verify_record, record):
        return VerifyPaymentResponse(success=True, message="Payment verified")
    return JSONResponse(
        status_code=400,
        content=VerifyPaymentResponse(success=False, message="Invalid signature").model_dump(),
    )


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.get("/stats", response_model=StatsResponse)
async def stats(
    principal: Principal = Depends(require_admin),
    services: Services = Depends(get_services),
) -> StatsResponse:
    return StatsResponse(**await run_in_domain(services.lifecycle.stats, principal))

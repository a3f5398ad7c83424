"""Storefront API package."""

from storefront.api.routes import admin_router, order_router, payment_router, product_router

__all__ = ["product_router", "order_router", "payment_router", "admin_router"]

"""Marketplace HTTP API package."""

from marketplace.api.errors import register_exception_handlers
from marketplace.api.routes import cart_router, delivery_router, order_router, product_router

__all__ = [
    "product_router",
    "cart_router",
    "order_router",
    "delivery_router",
    "register_exception_handlers",
]

"""Checkout domain API package."""

from checkout.api.errors import register_checkout_exception_handlers
from checkout.api.routes import (
    checkout_router,
    delivery_router,
    delivery_voucher_router,
    order_router,
    voucher_router,
)

__all__ = [
    "checkout_router",
    "voucher_router",
    "delivery_voucher_router",
    "order_router",
    "delivery_router",
    "register_checkout_exception_handlers",
]

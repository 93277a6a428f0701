"""Commerce API package."""

from commerce.api.routes import (
    checkout_router,
    inventory_router,
    maintenance_router,
    order_router,
    payment_router,
    voucher_router,
)

__all__ = [
    "checkout_router",
    "maintenance_router",
    "payment_router",
    "order_router",
    "inventory_router",
    "voucher_router",
]

"""Template registry: maps NotificationType values to template classes."""

from commerce.notification.templates.cart_recovery import CartRecoveryTemplate
from commerce.notification.templates.order_confirmation import OrderConfirmationTemplate
from commerce.notification.templates.stock_apology import StockApologyTemplate
from commerce.notification.types import NotificationType

TEMPLATE_REGISTRY: dict[str, type] = {
    NotificationType.CART_RECOVERY.value: CartRecoveryTemplate,
    NotificationType.ORDER_CONFIRMATION.value: OrderConfirmationTemplate,
    NotificationType.STOCK_APOLOGY.value: StockApologyTemplate,
}


def get_template(notification_type: str):
    template_cls = TEMPLATE_REGISTRY.get(notification_type)
    if template_cls is None:
        raise ValueError(f"No template registered for notification type: {notification_type}")
    return template_cls

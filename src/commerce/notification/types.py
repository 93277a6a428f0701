from enum import Enum


class NotificationType(Enum):
    CART_RECOVERY = "cart_recovery"
    ORDER_CONFIRMATION = "order_confirmation"
    STOCK_APOLOGY = "stock_apology"

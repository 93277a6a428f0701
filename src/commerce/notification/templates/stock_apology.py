"""Stock apology template: sent when a paid order is refunded for lack of stock."""

from commerce.notification.types import NotificationType


class StockApologyTemplate:
    notification_type = NotificationType.STOCK_APOLOGY.value

    @staticmethod
    def render(context: dict) -> dict:
        item_name = context.get("item_name", "an item in your order")
        return {
            "subject": "Sorry, we couldn't fulfil your order",
            "body": (
                f"Unfortunately {item_name} sold out while your payment was being processed.\n\n"
                "Your payment has been refunded in full and should appear within "
                "5-10 business days, depending on your bank.\n\n"
                "We're sorry for the inconvenience.\n\n"
                "Voltline Supply"
            ),
        }

"""Cart recovery template: sent once when the sweep abandons an idle cart."""

from commerce.notification.types import NotificationType


class CartRecoveryTemplate:
    notification_type = NotificationType.CART_RECOVERY.value

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "subject": "You left something in your cart",
            "body": (
                "Your cart is still waiting for you.\n\n"
                f"Pick up where you left off: {context['recovery_url']}\n\n"
                "Stock moves quickly, so we can't hold items for long.\n\n"
                "Voltline Supply"
            ),
        }

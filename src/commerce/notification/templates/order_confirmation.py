"""Order confirmation template: the receipt sent after an order is finalized."""

from commerce.notification.types import NotificationType


class OrderConfirmationTemplate:
    notification_type = NotificationType.ORDER_CONFIRMATION.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        currency = context.get("currency", "GBP")
        total = context.get("total", 0.0)
        lines = "\n".join(
            f"  {line['quantity']} x {line['name'] or line['product_ref']}  {currency} {line['line_total']:.2f}"
            for line in context.get("lines", [])
        )
        discount = context.get("discount_total") or 0.0
        discount_line = f"Discount: -{currency} {discount:.2f}\n" if discount else ""
        return {
            "subject": f"Order #{order_id} confirmed",
            "body": (
                f"Thanks for your order #{order_id}.\n\n"
                f"{lines}\n\n"
                f"{discount_line}"
                f"Total: {currency} {total:.2f}\n\n"
                "We'll let you know when it ships.\n\n"
                "Voltline Supply"
            ),
        }

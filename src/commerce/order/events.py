"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Order")
class OrderPlaced:
    """A paid checkout session became an order with stock drawn."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_session_id = String(required=True, max_length=255)
    email = String(required=True, max_length=254)
    item_count = Integer(default=0)
    total = Float(required=True)
    currency = String(max_length=3)
    voucher_code = String(max_length=50)
    placed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderRefundedNoStock:
    """Payment was taken but stock ran out, so the payment was refunded."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_session_id = String(required=True, max_length=255)
    email = String(max_length=254)
    product_ref = String(max_length=100)
    refund_id = String(max_length=255)
    recorded_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderShipped:
    __version__ = 1

    order_id = Identifier(required=True)
    carrier = String(max_length=100)
    tracking_number = String(max_length=100)
    shipped_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderCompleted:
    __version__ = 1

    order_id = Identifier(required=True)
    completed_at = DateTime(required=True)

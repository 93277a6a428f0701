"""Order aggregate: a finalized purchase, created only after payment.

An Order exists once per payment session: `payment_session_id` is unique,
which is what makes completion idempotent under concurrent confirmations.

State machine:
    PAID → SHIPPED → COMPLETED
    REFUNDED_NO_STOCK (terminal; payment taken, stock missing, money returned)
"""

from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from commerce.checkout.shipping import ShippingSnapshot
from commerce.domain import commerce
from commerce.order.events import OrderCompleted, OrderPlaced, OrderRefundedNoStock, OrderShipped
from commerce.utils.clock import utcnow


class OrderStatus(Enum):
    PAID = "Paid"
    SHIPPED = "Shipped"
    COMPLETED = "Completed"
    REFUNDED_NO_STOCK = "Refunded_No_Stock"


_VALID_TRANSITIONS = {
    OrderStatus.PAID: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),  # Terminal
    OrderStatus.REFUNDED_NO_STOCK: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@commerce.value_object(part_of="Order")
class AppliedVoucher:
    """The voucher as it was priced into the order."""

    code = String(required=True, max_length=50)
    voucher_type = String(required=True, max_length=20)
    value = Float(default=0.0)
    discount_total = Float(default=0.0)
    free_shipping = Boolean(default=False)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@commerce.entity(part_of="Order")
class OrderLine:
    product_ref = String(max_length=100)
    name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    line_total = Float(default=0.0, min_value=0.0)
    position = Integer(default=0)


def _build_lines(lines) -> list[OrderLine]:
    return [
        OrderLine(
            product_ref=line["product_ref"],
            name=line.get("name"),
            quantity=line["quantity"],
            unit_price=line["unit_price"],
            discount=line.get("discount", 0.0),
            line_total=line.get("line_total", round(line["unit_price"] * line["quantity"], 2)),
            position=index,
        )
        for index, line in enumerate(lines)
    ]


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------
@commerce.aggregate
class Order:
    email = String(required=True, max_length=254)
    items = HasMany(OrderLine)
    shipping = ValueObject(ShippingSnapshot)
    voucher = ValueObject(AppliedVoucher)
    payment_session_id = String(required=True, max_length=255, unique=True)
    payment_intent = String(max_length=255)
    amount_paid = Float(min_value=0.0)
    currency = String(max_length=3, default="GBP")
    subtotal = Float(default=0.0, min_value=0.0)
    discount_total = Float(default=0.0, min_value=0.0)
    shipping_cost = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    status = String(choices=OrderStatus, default=OrderStatus.PAID.value)
    checkout_id = Identifier()
    refund_id = String(max_length=255)
    shortfall_product_ref = String(max_length=100)
    carrier = String(max_length=100)
    tracking_number = String(max_length=100)
    created_at = DateTime()
    updated_at = DateTime()
    shipped_at = DateTime()
    completed_at = DateTime()

    # -------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        email,
        payment_session_id,
        lines,
        subtotal,
        discount_total,
        shipping_cost,
        total,
        shipping=None,
        voucher=None,
        payment_intent=None,
        amount_paid=None,
        currency="GBP",
        checkout_id=None,
    ):
        """A paid order whose stock has been drawn."""
        if not lines:
            raise ValidationError({"items": ["An order needs at least one line"]})

        now = utcnow()
        order = cls(
            email=email,
            payment_session_id=payment_session_id,
            payment_intent=payment_intent,
            amount_paid=amount_paid,
            currency=(currency or "GBP").upper(),
            subtotal=subtotal,
            discount_total=discount_total,
            shipping_cost=shipping_cost,
            total=total,
            shipping=ShippingSnapshot(**shipping) if shipping else None,
            voucher=AppliedVoucher(**voucher) if voucher else None,
            status=OrderStatus.PAID.value,
            checkout_id=checkout_id,
            created_at=now,
            updated_at=now,
        )
        order.add_items(_build_lines(lines))

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                payment_session_id=payment_session_id,
                email=email,
                item_count=len(lines),
                total=total,
                currency=order.currency,
                voucher_code=voucher["code"] if voucher else None,
                placed_at=now,
            )
        )
        return order

    @classmethod
    def refunded_for_missing_stock(
        cls,
        email,
        payment_session_id,
        lines,
        shortfall_product_ref,
        refund_id=None,
        shipping=None,
        payment_intent=None,
        amount_paid=None,
        currency="GBP",
        checkout_id=None,
    ):
        """Record a payment that was refunded because stock could not be drawn."""
        now = utcnow()
        subtotal = round(sum(line["unit_price"] * line["quantity"] for line in lines), 2)
        order = cls(
            email=email,
            payment_session_id=payment_session_id,
            payment_intent=payment_intent,
            amount_paid=amount_paid,
            currency=(currency or "GBP").upper(),
            subtotal=subtotal,
            total=amount_paid if amount_paid is not None else subtotal,
            shipping=ShippingSnapshot(**shipping) if shipping else None,
            status=OrderStatus.REFUNDED_NO_STOCK.value,
            checkout_id=checkout_id,
            refund_id=refund_id,
            shortfall_product_ref=shortfall_product_ref,
            created_at=now,
            updated_at=now,
        )
        if lines:
            order.add_items(_build_lines(lines))

        order.raise_(
            OrderRefundedNoStock(
                order_id=str(order.id),
                payment_session_id=payment_session_id,
                email=email,
                product_ref=shortfall_product_ref,
                refund_id=refund_id,
                recorded_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def line_items(self) -> list[OrderLine]:
        return sorted(self.items, key=lambda line: line.position or 0)

    @property
    def is_refunded(self) -> bool:
        return self.status == OrderStatus.REFUNDED_NO_STOCK.value

    # -------------------------------------------------------------------
    # Fulfillment
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Validate that the current state allows transition to target."""
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def ship(self, carrier=None, tracking_number=None):
        self._assert_can_transition(OrderStatus.SHIPPED)

        now = utcnow()
        self.status = OrderStatus.SHIPPED.value
        self.carrier = carrier
        self.tracking_number = tracking_number
        self.shipped_at = now
        self.updated_at = now

        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                carrier=carrier,
                tracking_number=tracking_number,
                shipped_at=now,
            )
        )

    def complete(self):
        self._assert_can_transition(OrderStatus.COMPLETED)

        now = utcnow()
        self.status = OrderStatus.COMPLETED.value
        self.completed_at = now
        self.updated_at = now

        self.raise_(OrderCompleted(order_id=str(self.id), completed_at=now))

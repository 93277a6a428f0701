"""Order finalization: the single unit of work that turns a paid session into an order.

`FinalizeOrder` re-validates the voucher, prices the lines, draws stock FIFO
from LIVE batches, redeems the voucher, inserts the Order and closes the
cart. All of it commits together or not at all.

Concurrency is left to the store:

- batches and the voucher are saved under their optimistic versions, a
  compare-and-swap at the store; a lost race raises ExpectedVersionError and
  the command handler retries the whole command on fresh reads, so the cap
  and the stock levels are re-checked against what the winner committed
- the unique `payment_session_id` refuses a second order for one session;
  the pipeline turns that into a replay of the winner

`RecordStockFailure` stores the refunded order once stock ran out.
"""

import json

import structlog
from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.checkout.checkout import Checkout, CheckoutStatus
from commerce.domain import commerce
from commerce.errors import InsufficientStock
from commerce.inventory.batch import Batch
from commerce.inventory.live import requested_quantities
from commerce.inventory.product import Product
from commerce.order.order import Order
from commerce.utils.clock import utcnow
from commerce.voucher.application import apply_voucher
from commerce.voucher.validation import validate
from commerce.voucher.voucher import Voucher

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class FinalizeOrder:
    """Create the paid order for a confirmed payment session."""

    payment_session_id = String(required=True, max_length=255)
    email = String(required=True, max_length=254)
    lines = Text(required=True)  # JSON: list of {product_ref, name, quantity, unit_price}
    shipping = Text()  # JSON: ShippingSnapshot fields
    voucher_code = String(max_length=50)
    checkout_id = Identifier()
    payment_intent = String(max_length=255)
    amount_paid = Float()
    currency = String(max_length=3)


@commerce.command(part_of="Order")
class RecordStockFailure:
    """Record a session whose payment was refunded because stock ran out."""

    payment_session_id = String(required=True, max_length=255)
    email = String(required=True, max_length=254)
    lines = Text(required=True)
    shipping = Text()
    shortfall_product_ref = String(max_length=100)
    refund_id = String(max_length=255)
    checkout_id = Identifier()
    payment_intent = String(max_length=255)
    amount_paid = Float()
    currency = String(max_length=3)


def _draw_stock(lines: list[dict], order_reference: str) -> None:
    """Draw every line from the oldest LIVE batches first."""
    products = current_domain.repository_for(Product)
    batches = current_domain.repository_for(Batch)

    for product_ref, requested in requested_quantities(lines).items():
        product = products.find_by_slug(product_ref)
        if product is None:
            raise InsufficientStock(product_ref, requested, 0)

        remaining = requested
        for batch in batches.drawable_for(str(product.id)):
            remaining -= batch.draw(remaining, order_reference=order_reference)
            batches.add(batch)
            if remaining == 0:
                break

        if remaining:
            raise InsufficientStock(product_ref, requested, requested - remaining)


def _close_checkout(checkout_id, order_id) -> None:
    if not checkout_id:
        return
    repo = current_domain.repository_for(Checkout)
    checkout = repo.get(checkout_id)
    if checkout.status == CheckoutStatus.COMPLETED.value and str(checkout.order_id) != str(order_id):
        logger.warning(
            "Checkout already closed by another order",
            checkout_id=str(checkout.id),
            order_id=str(order_id),
            closed_by=str(checkout.order_id),
        )
        return
    checkout.complete(order_id)
    repo.add(checkout)


def _replay(order: Order) -> dict:
    return {"order_id": str(order.id), "replayed": True}


@commerce.command_handler(part_of=Order)
class FinalizationHandler:
    @handle(FinalizeOrder)
    def finalize_order(self, command) -> dict:
        orders = current_domain.repository_for(Order)
        existing = orders.find_by_session(command.payment_session_id)
        if existing is not None:
            return _replay(existing)

        lines = json.loads(command.lines)
        shipping = json.loads(command.shipping) if command.shipping else None
        shipping_cost = (shipping or {}).get("cost") or 0.0

        voucher = None
        discount = None
        if command.voucher_code:
            voucher = current_domain.repository_for(Voucher).find_by_code(command.voucher_code)
            verdict = validate(voucher, utcnow())
            if verdict.valid:
                discount = verdict.discount
            else:
                # Audit trail: the customer saw a discount the voucher can no longer give.
                logger.warning(
                    "Voucher no longer valid at payment time",
                    voucher_code=command.voucher_code,
                    reason_code=verdict.reason_code.value,
                    payment_session_id=command.payment_session_id,
                )

        pricing = apply_voucher(lines, discount, shipping_cost)
        if discount is not None and not pricing.applied:
            logger.info(
                "Voucher did not apply to cart",
                voucher_code=command.voucher_code,
                reason_code=pricing.reason_code.value if pricing.reason_code else None,
            )

        _draw_stock(lines, order_reference=command.payment_session_id)

        applied_voucher = None
        if pricing.reduced_price:
            voucher.redeem(order_reference=command.payment_session_id)
            current_domain.repository_for(Voucher).add(voucher)
            applied_voucher = {
                "code": discount.code,
                "voucher_type": discount.voucher_type,
                "value": discount.value,
                "discount_total": pricing.discount_total,
                "free_shipping": discount.free_shipping,
            }

        if shipping is not None:
            shipping = {**shipping, "cost": pricing.shipping_cost}

        order = Order.place(
            email=command.email,
            payment_session_id=command.payment_session_id,
            lines=[line.to_dict() for line in pricing.lines],
            subtotal=pricing.subtotal,
            discount_total=pricing.discount_total,
            shipping_cost=pricing.shipping_cost,
            total=pricing.total,
            shipping=shipping,
            voucher=applied_voucher,
            payment_intent=command.payment_intent,
            amount_paid=command.amount_paid,
            currency=command.currency or current_domain.CURRENCY,
            checkout_id=command.checkout_id,
        )
        orders.add(order)
        _close_checkout(command.checkout_id, order.id)

        logger.info(
            "Order finalized",
            order_id=str(order.id),
            payment_session_id=command.payment_session_id,
            total=order.total,
            voucher_code=applied_voucher["code"] if applied_voucher else None,
        )
        return {"order_id": str(order.id), "replayed": False}

    @handle(RecordStockFailure)
    def record_stock_failure(self, command) -> dict:
        orders = current_domain.repository_for(Order)
        existing = orders.find_by_session(command.payment_session_id)
        if existing is not None:
            return _replay(existing)

        order = Order.refunded_for_missing_stock(
            email=command.email,
            payment_session_id=command.payment_session_id,
            lines=json.loads(command.lines),
            shortfall_product_ref=command.shortfall_product_ref,
            refund_id=command.refund_id,
            shipping=json.loads(command.shipping) if command.shipping else None,
            payment_intent=command.payment_intent,
            amount_paid=command.amount_paid,
            currency=command.currency or current_domain.CURRENCY,
            checkout_id=command.checkout_id,
        )
        orders.add(order)
        _close_checkout(command.checkout_id, order.id)

        logger.warning(
            "Order refunded for missing stock",
            order_id=str(order.id),
            payment_session_id=command.payment_session_id,
            product_ref=command.shortfall_product_ref,
        )
        return {"order_id": str(order.id), "replayed": False}

"""Checkout recording: command and handler for storefront cart snapshots.

The storefront posts the full cart on every change. Within the checkout
window the open cart for the email is overwritten; past it the stale cart is
superseded and a fresh one is started.
"""

import json
from datetime import timedelta

import structlog
from protean import handle
from protean.fields import DateTime, String, Text
from protean.utils.globals import current_domain

from commerce.checkout.checkout import AbandonReason, Checkout, normalize_email
from commerce.domain import commerce
from commerce.utils.clock import utcnow

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Checkout")
class RecordCheckout:
    """Record the latest cart snapshot for a customer email."""

    email = String(required=True, max_length=254)
    items = Text(required=True)  # JSON: list of {product_ref, name, quantity, unit_price}
    shipping = Text()  # JSON: ShippingSnapshot fields
    session_id = String(max_length=255)
    voucher_code = String(max_length=50)
    submitted_at = DateTime()


@commerce.command_handler(part_of=Checkout)
class RecordCheckoutHandler:
    @handle(RecordCheckout)
    def record_checkout(self, command):
        repo = current_domain.repository_for(Checkout)
        now = command.submitted_at or utcnow()
        window = timedelta(hours=current_domain.CHECKOUT_WINDOW_HOURS)

        email = normalize_email(command.email)
        items = json.loads(command.items)
        shipping = json.loads(command.shipping) if command.shipping else None

        existing = repo.find_open_for(email)
        if existing is not None and existing.is_within_window(now, window):
            existing.refresh(
                items,
                shipping=shipping,
                session_id=command.session_id,
                voucher_code=command.voucher_code,
                now=now,
            )
            repo.add(existing)
            logger.info("Checkout refreshed", checkout_id=str(existing.id), item_count=len(items))
            return str(existing.id)

        if existing is not None:
            existing.abandon(reason=AbandonReason.SUPERSEDED, now=now)
            repo.add(existing)
            logger.info(
                "Stale checkout superseded",
                checkout_id=str(existing.id),
                created_at=str(existing.created_at),
            )

        checkout = Checkout.start(
            email,
            items,
            shipping=shipping,
            session_id=command.session_id,
            voucher_code=command.voucher_code,
            now=now,
        )
        repo.add(checkout)
        logger.info("Checkout started", checkout_id=str(checkout.id), item_count=len(items))
        return str(checkout.id)

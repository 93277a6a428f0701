"""Checkout abandonment: commands for ageing out idle carts.

The sweep (see `commerce.checkout.lifecycle`) dispatches one AbandonCheckout
per candidate so each cart commits in its own unit of work. The handler
re-reads the cart: anything no longer Open, or touched since the cutoff, is
left alone, which makes redundant and overlapping sweeps harmless.
"""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier
from protean.utils.globals import current_domain

from commerce.checkout.checkout import AbandonReason, Checkout
from commerce.domain import commerce
from commerce.utils.clock import as_utc

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Checkout")
class AbandonCheckout:
    """Move an idle open cart to Abandoned."""

    checkout_id = Identifier(required=True)
    idle_before = DateTime(required=True)
    abandoned_at = DateTime()


@commerce.command(part_of="Checkout")
class MarkRecoveryNotified:
    checkout_id = Identifier(required=True)


@commerce.command_handler(part_of=Checkout)
class AbandonCheckoutHandler:
    @handle(AbandonCheckout)
    def abandon_checkout(self, command) -> bool:
        repo = current_domain.repository_for(Checkout)
        checkout = repo.get(command.checkout_id)

        if not checkout.is_open:
            logger.info(
                "Checkout no longer open, skipping",
                checkout_id=str(checkout.id),
                status=checkout.status,
            )
            return False

        if not checkout.is_idle_since(as_utc(command.idle_before)):
            logger.info("Checkout active again, skipping", checkout_id=str(checkout.id))
            return False

        checkout.abandon(reason=AbandonReason.IDLE, now=command.abandoned_at)
        repo.add(checkout)
        return True

    @handle(MarkRecoveryNotified)
    def mark_recovery_notified(self, command):
        repo = current_domain.repository_for(Checkout)
        checkout = repo.get(command.checkout_id)
        checkout.mark_recovery_notified()
        repo.add(checkout)

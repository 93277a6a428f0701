"""Checkout lifecycle: recording cart snapshots and sweeping idle carts.

`sweep_abandoned` is meant to be triggered periodically by an external
scheduler (cron hitting the maintenance endpoint, or `manage.py sweep`).
Each cart is handled independently:

1. claim the Open → Abandoned transition in its own unit of work; the
   version check means only one sweep ever wins a given cart
2. send one recovery email for the carts this sweep claimed

A failed send is logged with its own reason and the cart stays Abandoned, so
a permanently bouncing address is never retried forever. A store failure on
one cart is logged and the sweep moves on.
"""

import json
from datetime import datetime, timedelta

import structlog
from protean.exceptions import (
    DatabaseError,
    ExpectedVersionError,
    InvalidOperationError,
    ObjectNotFoundError,
    TransactionError,
    ValidationError,
)
from protean.utils.globals import current_domain

from commerce.checkout.abandonment import AbandonCheckout, MarkRecoveryNotified
from commerce.checkout.checkout import Checkout
from commerce.checkout.recording import RecordCheckout
from commerce.notification.notifier import Notifier
from commerce.notification.types import NotificationType
from commerce.utils.clock import utcnow

logger = structlog.get_logger(__name__)

DEFAULT_IDLE_THRESHOLD = timedelta(hours=1)

# Failures that only cost us this one cart
_PER_CART_FAILURES = (
    ValidationError,
    InvalidOperationError,
    ObjectNotFoundError,
    ExpectedVersionError,
    DatabaseError,
    TransactionError,
)


class CheckoutLifecycleManager:
    def __init__(self, notifier: Notifier, recovery_url_base: str) -> None:
        self.notifier = notifier
        self.recovery_url_base = recovery_url_base.rstrip("/")

    def record_checkout(
        self,
        email: str,
        items: list[dict],
        shipping: dict | None = None,
        session_id: str | None = None,
        voucher_code: str | None = None,
        submitted_at: datetime | None = None,
    ) -> str:
        """Persist the latest cart snapshot and return the checkout id."""
        command = RecordCheckout(
            email=email,
            items=json.dumps(items),
            shipping=json.dumps(shipping) if shipping else None,
            session_id=session_id,
            voucher_code=voucher_code,
            submitted_at=submitted_at,
        )
        try:
            return current_domain.process(command, asynchronous=False)
        except (ValidationError, TransactionError) as exc:
            # Two first submissions for one email raced; the loser's insert hits the
            # open_claim unique constraint. Replaying now finds the winner and updates it.
            if isinstance(exc, ValidationError) and "open_claim" not in (exc.messages or {}):
                raise
            logger.info("Concurrent checkout start, retrying as update", email=email)
            return current_domain.process(command, asynchronous=False)

    def recovery_url(self, checkout_id: str) -> str:
        return f"{self.recovery_url_base}/cart?recovery={checkout_id}"

    def sweep_abandoned(
        self,
        idle_threshold: timedelta = DEFAULT_IDLE_THRESHOLD,
        as_of: datetime | None = None,
    ) -> int:
        """Abandon open carts idle past the threshold. Returns how many were transitioned."""
        now = as_of or utcnow()
        cutoff = now - idle_threshold

        candidates = current_domain.repository_for(Checkout).idle_open(cutoff)
        logger.info(
            "Sweeping idle checkouts",
            cutoff=cutoff.isoformat(),
            candidate_count=len(candidates),
        )

        abandoned_count = 0
        for checkout in candidates:
            checkout_id = str(checkout.id)
            try:
                claimed = current_domain.process(
                    AbandonCheckout(checkout_id=checkout_id, idle_before=cutoff, abandoned_at=now),
                    asynchronous=False,
                )
            except _PER_CART_FAILURES as exc:
                logger.warning(
                    "Failed to abandon checkout",
                    checkout_id=checkout_id,
                    reason="store_failure",
                    error=str(exc),
                )
                continue

            if not claimed:
                continue

            abandoned_count += 1
            self._send_recovery(checkout_id, checkout.email)

        logger.info("Checkout sweep complete", abandoned_count=abandoned_count)
        return abandoned_count

    def _send_recovery(self, checkout_id: str, email: str) -> None:
        result = self.notifier.send(
            NotificationType.CART_RECOVERY,
            to=email,
            context={"checkout_id": checkout_id, "recovery_url": self.recovery_url(checkout_id)},
        )
        if not result.delivered:
            logger.warning(
                "Recovery notification failed",
                checkout_id=checkout_id,
                reason="recovery_notification_failed",
                error=result.error,
            )
            return

        try:
            current_domain.process(MarkRecoveryNotified(checkout_id=checkout_id), asynchronous=False)
        except _PER_CART_FAILURES as exc:
            logger.warning("Could not flag recovery as sent", checkout_id=checkout_id, error=str(exc))

"""Repository for the Checkout aggregate."""

from datetime import datetime

from commerce.checkout.checkout import Checkout, CheckoutStatus
from commerce.domain import commerce
from commerce.utils.clock import as_utc


@commerce.repository(part_of=Checkout)
class CheckoutRepository:
    def find_open_for(self, email: str) -> Checkout | None:
        """The single open cart holding the claim for this email, if any."""
        return self._dao.query.filter(open_claim=email).all().first

    def find_by_session(self, session_id: str) -> Checkout | None:
        return self._dao.query.filter(session_id=session_id).order_by("-created_at").all().first

    def find_recent_for(self, email: str, since: datetime) -> Checkout | None:
        """Most recent cart for the email that an order could still complete."""
        candidates = (
            self._dao.query.filter(email=email)
            .exclude(status=CheckoutStatus.COMPLETED.value)
            .order_by("-created_at")
            .limit(None)
            .all()
            .items
        )
        return next((c for c in candidates if as_utc(c.created_at) >= since), None)

    def idle_open(self, cutoff: datetime) -> list[Checkout]:
        """Open carts whose last activity is older than the cutoff."""
        open_carts = (
            self._dao.query.filter(status=CheckoutStatus.OPEN.value)
            .order_by("last_active")
            .limit(None)
            .all()
            .items
        )
        return [cart for cart in open_carts if cart.is_idle_since(cutoff)]

"""Repository for the Order aggregate."""

from commerce.domain import commerce
from commerce.order.order import Order


@commerce.repository(part_of=Order)
class OrderRepository:
    def find_by_session(self, payment_session_id: str) -> Order | None:
        return self._dao.query.filter(payment_session_id=payment_session_id).all().first

    def for_email(self, email: str) -> list[Order]:
        return self._dao.query.filter(email=email).order_by("-created_at").limit(None).all().items

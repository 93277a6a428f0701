"""Payment gateway port (abstract interface).

Defines the contract every payment gateway adapter implements, so the
order pipeline works the same against FakeGateway (dev/test) and
StripeGateway (production).

Amounts crossing this port are in major currency units (pounds, not pence).
Adapters convert at the edge.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

PAID = "paid"
SESSION_COMPLETED = "checkout.session.completed"


@dataclass(frozen=True)
class SessionLineItem:
    """A line as the gateway charged it. `product_ref` is None for non-stock lines such as shipping."""

    product_ref: str | None
    name: str | None
    quantity: int
    unit_price: float


@dataclass(frozen=True)
class PaymentSession:
    session_id: str
    payment_status: str | None
    payment_intent: str | None = None
    email: str | None = None
    amount_total: float | None = None
    currency: str | None = None
    line_items: tuple[SessionLineItem, ...] = field(default_factory=tuple)
    shipping: dict | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAID

    @property
    def stock_lines(self) -> list[SessionLineItem]:
        return [line for line in self.line_items if line.product_ref]


@dataclass(frozen=True)
class PaymentEvent:
    event_id: str
    event_type: str
    session_id: str | None = None


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund attempt."""

    success: bool
    refund_id: str | None = None
    status: str | None = None
    failure_reason: str | None = None


def shipping_from_metadata(metadata: dict | None) -> dict | None:
    """Shipping details travel as a JSON string in session metadata."""
    raw = (metadata or {}).get("shipping_details")
    if not raw:
        return None
    try:
        details = json.loads(raw) if isinstance(raw, str) else dict(raw)
    except (TypeError, ValueError):
        return None
    return details or None


def event_from_payload(payload: dict) -> PaymentEvent:
    data_object = (payload.get("data") or {}).get("object") or {}
    session_id = data_object.get("id") if data_object.get("object", "checkout.session") == "checkout.session" else None
    return PaymentEvent(
        event_id=payload.get("id", ""),
        event_type=payload.get("type", ""),
        session_id=session_id,
    )


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def retrieve_session(self, session_id: str) -> PaymentSession:
        """Fetch the current state of a checkout session, line items included."""
        ...

    @abstractmethod
    def construct_event(self, payload: bytes | str, signature: str | None) -> PaymentEvent:
        """Verify a webhook payload and parse it. Raises InvalidSignatureError."""
        ...

    @abstractmethod
    def refund(self, payment_intent: str, idempotency_key: str) -> RefundResult:
        """Refund a payment in full."""
        ...

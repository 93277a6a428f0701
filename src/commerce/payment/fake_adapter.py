"""Configurable fake payment gateway for development and testing.

Simulates the gateway without any external calls:
- sessions are registered up front with `add_session`
- webhooks are signed the way Stripe signs them (`t=<ts>,v1=<hmac-sha256>`),
  so signature handling is exercised for real; use `sign()` to build the
  header in tests
- `configure()` makes refunds decline or the whole gateway unreachable
"""

import hashlib
import hmac
import json
import time
from uuid import uuid4

from protean.exceptions import ObjectNotFoundError

from commerce.errors import InvalidSignatureError, UpstreamError
from commerce.payment.port import (
    PAID,
    PaymentEvent,
    PaymentGateway,
    PaymentSession,
    RefundResult,
    SessionLineItem,
    event_from_payload,
)

DEFAULT_TOLERANCE_SECONDS = 300


def _signature(secret: str, timestamp: int, payload: str) -> str:
    signed = f"{timestamp}.{payload}".encode()
    return hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()


def _parse_header(header: str) -> tuple[int | None, list[str]]:
    timestamp = None
    signatures = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t" and value.isdigit():
            timestamp = int(value)
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, webhook_secret: str = "whsec_test", tolerance: int = DEFAULT_TOLERANCE_SECONDS) -> None:
        self.webhook_secret = webhook_secret
        self.tolerance = tolerance
        self.sessions: dict[str, PaymentSession] = {}
        self.should_succeed: bool = True
        self.failure_reason: str = "Refund declined"
        self.unreachable: bool = False
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Refund declined",
        unreachable: bool = False,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.unreachable = unreachable

    def reset(self) -> None:
        self.sessions.clear()
        self.calls.clear()
        self.configure()

    def add_session(
        self,
        session_id: str,
        email: str,
        line_items: list[dict],
        payment_status: str = PAID,
        payment_intent: str | None = None,
        amount_total: float | None = None,
        currency: str = "gbp",
        shipping: dict | None = None,
    ) -> PaymentSession:
        items = tuple(
            SessionLineItem(
                product_ref=item.get("product_ref"),
                name=item.get("name"),
                quantity=item.get("quantity", 1),
                unit_price=item["unit_price"],
            )
            for item in line_items
        )
        if amount_total is None:
            amount_total = round(sum(item.unit_price * item.quantity for item in items), 2)

        session = PaymentSession(
            session_id=session_id,
            payment_status=payment_status,
            payment_intent=payment_intent or f"pi_fake_{uuid4().hex[:12]}",
            email=email,
            amount_total=amount_total,
            currency=currency,
            line_items=items,
            shipping=shipping,
        )
        self.sessions[session_id] = session
        return session

    def mark_paid(self, session_id: str) -> None:
        session = self.sessions[session_id]
        self.sessions[session_id] = PaymentSession(**{**session.__dict__, "payment_status": PAID})

    def retrieve_session(self, session_id: str) -> PaymentSession:
        self.calls.append({"method": "retrieve_session", "session_id": session_id})
        if self.unreachable:
            raise UpstreamError("payment_gateway", "timed out retrieving session")

        session = self.sessions.get(session_id)
        if session is None:
            raise ObjectNotFoundError(f"Payment session `{session_id}` does not exist")
        return session

    def sign(self, payload: str, timestamp: int | None = None) -> str:
        """Build a signature header for `payload`, as the gateway would."""
        timestamp = int(time.time()) if timestamp is None else timestamp
        return f"t={timestamp},v1={_signature(self.webhook_secret, timestamp, payload)}"

    def construct_event(self, payload: bytes | str, signature: str | None) -> PaymentEvent:
        self.calls.append({"method": "construct_event"})
        body = payload.decode() if isinstance(payload, bytes) else payload
        if not signature:
            raise InvalidSignatureError("Missing signature header")

        timestamp, candidates = _parse_header(signature)
        if timestamp is None or not candidates:
            raise InvalidSignatureError("Malformed signature header")

        expected = _signature(self.webhook_secret, timestamp, body)
        if not any(hmac.compare_digest(expected, candidate) for candidate in candidates):
            raise InvalidSignatureError()
        if self.tolerance and abs(time.time() - timestamp) > self.tolerance:
            raise InvalidSignatureError("Signature timestamp outside the tolerance zone")

        try:
            data = json.loads(body)
        except ValueError as exc:
            raise InvalidSignatureError("Payload is not valid JSON") from exc
        return event_from_payload(data)

    def refund(self, payment_intent: str, idempotency_key: str) -> RefundResult:
        self.calls.append(
            {
                "method": "refund",
                "payment_intent": payment_intent,
                "idempotency_key": idempotency_key,
            }
        )
        if self.unreachable:
            raise UpstreamError("payment_gateway", "timed out creating refund")

        if self.should_succeed:
            return RefundResult(
                success=True,
                refund_id=f"re_fake_{uuid4().hex[:12]}",
                status="succeeded",
            )
        return RefundResult(success=False, status="failed", failure_reason=self.failure_reason)

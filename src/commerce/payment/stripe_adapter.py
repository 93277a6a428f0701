"""Stripe payment gateway adapter.

Wraps stripe-python's `StripeClient`. Each client owns its HTTP client and
timeout, so nothing is configured on the `stripe` module globally.

Stripe reports amounts in minor units; they are divided by 100 here.
Stock lines are recognised by a `slug` in the Stripe product's metadata;
lines without one (shipping, legacy products) carry no product ref.
"""

import stripe
import structlog
from protean.exceptions import ObjectNotFoundError

from commerce.errors import InvalidSignatureError, UpstreamError
from commerce.payment.port import (
    PaymentEvent,
    PaymentGateway,
    PaymentSession,
    RefundResult,
    SessionLineItem,
    event_from_payload,
    shipping_from_metadata,
)

logger = structlog.get_logger(__name__)

SERVICE = "stripe"


def _major(amount: int | None) -> float | None:
    return None if amount is None else amount / 100


def _line_from_stripe(item: dict) -> SessionLineItem:
    price = item.get("price") or {}
    product = price.get("product")
    metadata = product.get("metadata", {}) if isinstance(product, dict) else {}
    quantity = item.get("quantity") or 1

    unit_amount = price.get("unit_amount")
    if unit_amount is None and item.get("amount_total") is not None:
        unit_amount = item["amount_total"] / quantity

    return SessionLineItem(
        product_ref=metadata.get("slug") or metadata.get("product_ref"),
        name=item.get("description") or (product.get("name") if isinstance(product, dict) else None),
        quantity=quantity,
        unit_price=_major(unit_amount) or 0.0,
    )


def session_from_stripe(data: dict) -> PaymentSession:
    customer = data.get("customer_details") or {}
    metadata = data.get("metadata") or {}
    line_items = (data.get("line_items") or {}).get("data") or []

    payment_intent = data.get("payment_intent")
    if isinstance(payment_intent, dict):
        payment_intent = payment_intent.get("id")

    shipping = shipping_from_metadata(metadata)
    if shipping is None and customer.get("address"):
        address = customer["address"]
        shipping = {
            "name": customer.get("name"),
            "line1": address.get("line1"),
            "line2": address.get("line2"),
            "city": address.get("city"),
            "postal_code": address.get("postal_code"),
            "country": address.get("country"),
            "phone": customer.get("phone"),
        }

    return PaymentSession(
        session_id=data["id"],
        payment_status=data.get("payment_status"),
        payment_intent=payment_intent,
        email=customer.get("email") or data.get("customer_email"),
        amount_total=_major(data.get("amount_total")),
        currency=data.get("currency"),
        line_items=tuple(_line_from_stripe(item) for item in line_items),
        shipping=shipping,
        metadata=dict(metadata),
    )


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, api_key: str, webhook_secret: str, timeout: float = 10.0, max_network_retries: int = 2) -> None:
        self.webhook_secret = webhook_secret
        self.client = stripe.StripeClient(
            api_key,
            http_client=stripe.HTTPXClient(timeout=timeout, allow_sync_methods=True),
            max_network_retries=max_network_retries,
        )

    def retrieve_session(self, session_id: str) -> PaymentSession:
        try:
            session = self.client.v1.checkout.sessions.retrieve(
                session_id,
                params={"expand": ["line_items.data.price.product"]},
            )
        except stripe.InvalidRequestError as exc:
            if exc.http_status == 404:
                raise ObjectNotFoundError(f"Payment session `{session_id}` does not exist") from exc
            raise UpstreamError(SERVICE, str(exc)) from exc
        except stripe.StripeError as exc:
            logger.warning("Stripe session lookup failed", session_id=session_id, error=str(exc))
            raise UpstreamError(SERVICE, str(exc)) from exc

        return session_from_stripe(session.to_dict())

    def construct_event(self, payload: bytes | str, signature: str | None) -> PaymentEvent:
        try:
            event = self.client.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as exc:
            raise InvalidSignatureError() from exc
        except ValueError as exc:
            raise InvalidSignatureError("Payload is not valid JSON") from exc
        return event_from_payload(event.to_dict())

    def refund(self, payment_intent: str, idempotency_key: str) -> RefundResult:
        try:
            refund = self.client.v1.refunds.create(
                params={"payment_intent": payment_intent, "reason": "requested_by_customer"},
                options={"idempotency_key": idempotency_key},
            )
        except stripe.CardError as exc:
            return RefundResult(success=False, status="failed", failure_reason=exc.user_message or str(exc))
        except stripe.StripeError as exc:
            logger.warning("Stripe refund failed", payment_intent=payment_intent, error=str(exc))
            raise UpstreamError(SERVICE, str(exc)) from exc

        return RefundResult(
            success=refund.status in ("succeeded", "pending"),
            refund_id=refund.id,
            status=refund.status,
            failure_reason=getattr(refund, "failure_reason", None),
        )

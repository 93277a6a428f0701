"""Order completion pipeline: from a confirmed payment session to exactly one order.

Both the payment webhook and the customer's confirmation poll call
`complete_order` for the same session, often at the same moment. The result
is always the same single Order:

1. an Order already stored for the session is returned as a replay
2. the gateway must report the session as paid
3. the cart is found by session id, else by email within the checkout window;
   without one the order is built from the session's own line items
4. live stock is checked up front
5. `FinalizeOrder` commits stock draw, voucher redemption, order insert and
   cart completion together; a voucher still contended after the retries is
   dropped for this order rather than failing it
6. a concurrent completion that won the unique session constraint is
   re-read and returned as a replay
7. the confirmation email goes out after the commit

Running out of stock (up front or while drawing) refunds the payment first
and only then records a Refunded_No_Stock order, so a failed refund leaves
nothing behind and the trigger can simply retry.
"""

import json
from dataclasses import dataclass
from datetime import timedelta

import structlog
from protean.exceptions import ExpectedVersionError, TransactionError, ValidationError
from protean.utils.globals import current_domain

from commerce.checkout.checkout import Checkout
from commerce.checkout.shipping import shipping_fields
from commerce.errors import InsufficientStock, PaymentNotConfirmed, UpstreamError
from commerce.inventory.live import LiveInventory
from commerce.notification.notifier import Notifier
from commerce.notification.types import NotificationType
from commerce.order.finalization import FinalizeOrder, RecordStockFailure
from commerce.order.order import Order
from commerce.payment.port import SESSION_COMPLETED, PaymentEvent, PaymentGateway, PaymentSession
from commerce.utils.clock import utcnow

logger = structlog.get_logger(__name__)

ASYNC_PAYMENT_SUCCEEDED = "checkout.session.async_payment_succeeded"
COMPLETION_EVENTS = {SESSION_COMPLETED, ASYNC_PAYMENT_SUCCEEDED}


@dataclass(frozen=True)
class CompletionResult:
    order: Order
    replayed: bool = False

    @property
    def refunded(self) -> bool:
        return self.order.is_refunded


def _cart_lines(checkout: Checkout) -> list[dict]:
    return [
        {
            "product_ref": item.product_ref,
            "name": item.name,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
        }
        for item in checkout.line_items
    ]


def _session_lines(session: PaymentSession) -> list[dict]:
    return [
        {
            "product_ref": line.product_ref,
            "name": line.name,
            "quantity": line.quantity,
            "unit_price": line.unit_price,
        }
        for line in session.stock_lines
    ]


class OrderCompletionPipeline:
    def __init__(
        self,
        gateway: PaymentGateway,
        notifier: Notifier,
        inventory: LiveInventory | None = None,
        window: timedelta | None = None,
    ) -> None:
        self.gateway = gateway
        self.notifier = notifier
        self.inventory = inventory or LiveInventory()
        self._window = window

    @property
    def window(self) -> timedelta:
        if self._window is not None:
            return self._window
        return timedelta(hours=current_domain.CHECKOUT_WINDOW_HOURS)

    # -------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------
    def complete_order(self, session_id: str) -> CompletionResult:
        with structlog.contextvars.bound_contextvars(payment_session_id=session_id):
            orders = current_domain.repository_for(Order)
            existing = orders.find_by_session(session_id)
            if existing is not None:
                logger.info("Order already exists for session", order_id=str(existing.id))
                return CompletionResult(order=existing, replayed=True)

            session = self.gateway.retrieve_session(session_id)
            if not session.is_paid:
                raise PaymentNotConfirmed(session_id, session.payment_status)

            checkout = self._resolve_checkout(session)
            if checkout is not None:
                lines = _cart_lines(checkout)
                shipping = checkout.shipping.to_dict() if checkout.shipping else shipping_fields(session.shipping)
                voucher_code = checkout.voucher_code
            else:
                logger.info("No cart found for session, using session line items")
                lines = _session_lines(session)
                shipping = shipping_fields(session.shipping)
                voucher_code = session.metadata.get("voucher_code")

            missing = self.inventory.shortfalls(lines)
            if missing:
                return self._refund_for_shortfall(session, checkout, lines, shipping, missing[0].product_ref)

            fields = {
                "payment_session_id": session_id,
                "email": session.email or (checkout.email if checkout else None),
                "lines": json.dumps(lines),
                "shipping": json.dumps(shipping) if shipping else None,
                "voucher_code": voucher_code,
                "checkout_id": str(checkout.id) if checkout else None,
                "payment_intent": session.payment_intent,
                "amount_paid": session.amount_total,
                "currency": (session.currency or "").upper() or None,
            }
            try:
                outcome = self._finalize(fields)
            except InsufficientStock as exc:
                logger.warning(
                    "Stock ran out while drawing",
                    product_ref=exc.product_ref,
                    requested=exc.requested,
                    available=exc.available,
                )
                return self._refund_for_shortfall(session, checkout, lines, shipping, exc.product_ref)
            except (ValidationError, TransactionError) as exc:
                return self._concurrent_winner(session_id, exc)

            order = orders.get(outcome["order_id"])
            if outcome["replayed"]:
                return CompletionResult(order=order, replayed=True)

            self._send_confirmation(order)
            return CompletionResult(order=order, replayed=False)

    def process_event(self, event: PaymentEvent) -> CompletionResult | None:
        """Handle a verified gateway event. Unrelated event types are ignored."""
        if event.event_type not in COMPLETION_EVENTS or not event.session_id:
            logger.info("Ignoring payment event", event_id=event.event_id, event_type=event.event_type)
            return None

        try:
            return self.complete_order(event.session_id)
        except PaymentNotConfirmed as exc:
            # Delayed payment methods complete the session before the money arrives;
            # the async_payment_succeeded event finishes the job.
            logger.info(
                "Session completed but not yet paid",
                event_id=event.event_id,
                payment_session_id=event.session_id,
                payment_status=exc.payment_status,
            )
            return None

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _resolve_checkout(self, session: PaymentSession) -> Checkout | None:
        repo = current_domain.repository_for(Checkout)
        checkout = repo.find_by_session(session.session_id)
        if checkout is None and session.email:
            checkout = repo.find_recent_for(session.email.strip().lower(), utcnow() - self.window)
        return checkout

    def _finalize(self, fields: dict) -> dict:
        """Dispatch `FinalizeOrder`, giving up the voucher if contention outlasts the retries.

        Every version conflict the handler retries on means another order
        committed, so the conflicts a completion can lose are bounded by the
        completions running beside it. When they still outlast the handler's
        retry budget and a voucher is in play, the voucher counts as exhausted
        for this order and finalization runs once more without it. A paid order
        is never failed over a lost discount.
        """
        try:
            return current_domain.process(FinalizeOrder(**fields), asynchronous=False)
        except ExpectedVersionError:
            if not fields["voucher_code"]:
                raise

        logger.warning(
            "Voucher redemption lost to concurrent orders",
            voucher_code=fields["voucher_code"],
            reason_code="REDEMPTION_CONFLICT",
        )
        return current_domain.process(FinalizeOrder(**{**fields, "voucher_code": None}), asynchronous=False)

    def _concurrent_winner(self, session_id: str, exc: Exception) -> CompletionResult:
        if isinstance(exc, ValidationError) and "payment_session_id" not in (exc.messages or {}):
            raise exc

        winner = current_domain.repository_for(Order).find_by_session(session_id)
        if winner is None:
            raise exc
        logger.info("Concurrent completion won, replaying", order_id=str(winner.id))
        return CompletionResult(order=winner, replayed=True)

    def _refund_for_shortfall(
        self,
        session: PaymentSession,
        checkout: Checkout | None,
        lines: list[dict],
        shipping: dict | None,
        product_ref: str,
    ) -> CompletionResult:
        refund_id = None
        if session.payment_intent:
            refund = self.gateway.refund(session.payment_intent, idempotency_key=f"refund-{session.session_id}")
            if not refund.success:
                raise UpstreamError("payment_gateway", f"refund declined: {refund.failure_reason}")
            refund_id = refund.refund_id
        else:
            logger.warning("No payment intent to refund", product_ref=product_ref)

        email = session.email or (checkout.email if checkout else None)
        command = RecordStockFailure(
            payment_session_id=session.session_id,
            email=email,
            lines=json.dumps(lines),
            shipping=json.dumps(shipping) if shipping else None,
            shortfall_product_ref=product_ref,
            refund_id=refund_id,
            checkout_id=str(checkout.id) if checkout else None,
            payment_intent=session.payment_intent,
            amount_paid=session.amount_total,
            currency=(session.currency or "").upper() or None,
        )
        try:
            outcome = current_domain.process(command, asynchronous=False)
        except (ValidationError, TransactionError) as exc:
            return self._concurrent_winner(session.session_id, exc)

        order = current_domain.repository_for(Order).get(outcome["order_id"])
        if outcome["replayed"]:
            return CompletionResult(order=order, replayed=True)

        short_line = next((line for line in lines if line["product_ref"].strip().lower() == product_ref), None)
        item_name = (short_line.get("name") or short_line["product_ref"]) if short_line else product_ref
        result = self.notifier.send(NotificationType.STOCK_APOLOGY, to=email, context={"item_name": item_name})
        if not result.delivered:
            logger.warning("Stock apology not delivered", order_id=str(order.id), error=result.error)
        return CompletionResult(order=order, replayed=False)

    def _send_confirmation(self, order: Order) -> None:
        context = {
            "order_id": str(order.id),
            "currency": order.currency,
            "total": order.total,
            "discount_total": order.discount_total,
            "lines": [
                {
                    "product_ref": line.product_ref,
                    "name": line.name,
                    "quantity": line.quantity,
                    "line_total": line.line_total,
                }
                for line in order.line_items
            ],
        }
        result = self.notifier.send(NotificationType.ORDER_CONFIRMATION, to=order.email, context=context)
        if not result.delivered:
            logger.warning("Order confirmation not delivered", order_id=str(order.id), error=result.error)

"""Domain tests for the Checkout aggregate."""

from datetime import timedelta

import pytest
from commerce.checkout.checkout import AbandonReason, Checkout, CheckoutStatus, normalize_email
from commerce.checkout.events import CheckoutAbandoned, CheckoutCompleted, CheckoutRefreshed, CheckoutStarted
from commerce.utils.clock import utcnow
from protean.exceptions import ValidationError

ITEMS = [
    {"product_ref": "p45b", "name": "P45B Cell", "quantity": 10, "unit_price": 4.5},
    {"product_ref": "p30", "name": "P30 Cell", "quantity": 2, "unit_price": 3.0},
]


def _start(**overrides):
    params = {"email": "  Buyer@Example.COM ", "items": ITEMS}
    params.update(overrides)
    return Checkout.start(**params)


class TestCheckoutStart:
    def test_email_is_normalized(self):
        checkout = _start()
        assert checkout.email == "buyer@example.com"
        assert checkout.open_claim == "buyer@example.com"

    def test_starts_open(self):
        checkout = _start()
        assert checkout.status == CheckoutStatus.OPEN.value
        assert checkout.is_open

    def test_items_keep_submission_order(self):
        checkout = _start()
        assert [item.product_ref for item in checkout.line_items] == ["p45b", "p30"]

    def test_shipping_snapshot(self):
        checkout = _start(shipping={"name": "Ada", "city": "Leeds", "cost": 4.95})
        assert checkout.shipping.city == "Leeds"
        assert checkout.shipping.cost == 4.95

    def test_voucher_code_is_upper_cased(self):
        checkout = _start(voucher_code=" save10 ")
        assert checkout.voucher_code == "SAVE10"

    def test_raises_started_event(self):
        checkout = _start()
        assert isinstance(checkout._events[-1], CheckoutStarted)
        assert checkout._events[-1].item_count == 2

    def test_requires_items(self):
        with pytest.raises(ValidationError) as exc:
            _start(items=[])
        assert "items" in exc.value.messages

    def test_requires_email(self):
        with pytest.raises(ValidationError) as exc:
            _start(email="   ")
        assert "email" in exc.value.messages


class TestCheckoutRefresh:
    def test_overwrites_snapshot(self):
        checkout = _start(shipping={"city": "Leeds"})
        later = utcnow() + timedelta(minutes=5)

        checkout.refresh([{"product_ref": "p30", "quantity": 1, "unit_price": 3.0}], shipping=None, now=later)

        assert [item.product_ref for item in checkout.line_items] == ["p30"]
        assert checkout.shipping is None
        assert checkout.last_active == later
        assert isinstance(checkout._events[-1], CheckoutRefreshed)

    def test_overwrites_session_reference(self):
        checkout = _start(session_id="cs_1")
        checkout.refresh(ITEMS, session_id="cs_2")
        assert checkout.session_id == "cs_2"

    def test_submission_without_session_clears_the_reference(self):
        checkout = _start(session_id="cs_1")
        checkout.refresh(ITEMS)
        assert checkout.session_id is None

    def test_cannot_refresh_abandoned_cart(self):
        checkout = _start()
        checkout.abandon()
        with pytest.raises(ValidationError):
            checkout.refresh(ITEMS)


class TestCheckoutWindow:
    def test_within_window(self):
        now = utcnow()
        checkout = _start(now=now - timedelta(hours=23))
        assert checkout.is_within_window(now, timedelta(hours=24))

    def test_outside_window(self):
        now = utcnow()
        checkout = _start(now=now - timedelta(hours=25))
        assert not checkout.is_within_window(now, timedelta(hours=24))

    def test_idle_since(self):
        now = utcnow()
        checkout = _start(now=now - timedelta(hours=2))
        assert checkout.is_idle_since(now - timedelta(hours=1))
        assert not checkout.is_idle_since(now - timedelta(hours=3))


class TestCheckoutTransitions:
    def test_abandon_releases_open_claim(self):
        checkout = _start()
        checkout.abandon()
        assert checkout.status == CheckoutStatus.ABANDONED.value
        assert checkout.open_claim is None
        assert checkout.abandon_reason == AbandonReason.IDLE.value
        assert isinstance(checkout._events[-1], CheckoutAbandoned)

    def test_abandon_twice_is_refused(self):
        checkout = _start()
        checkout.abandon()
        with pytest.raises(ValidationError):
            checkout.abandon()

    def test_superseded_reason(self):
        checkout = _start()
        checkout.abandon(reason=AbandonReason.SUPERSEDED)
        assert checkout.abandon_reason == "Superseded"

    def test_complete_open_cart(self):
        checkout = _start()
        checkout.complete("order-1")
        assert checkout.status == CheckoutStatus.COMPLETED.value
        assert checkout.order_id == "order-1"
        assert isinstance(checkout._events[-1], CheckoutCompleted)

    def test_abandoned_cart_can_still_complete(self):
        checkout = _start()
        checkout.abandon()
        checkout.complete("order-1")
        assert checkout.status == CheckoutStatus.COMPLETED.value

    def test_completing_again_for_same_order_is_a_no_op(self):
        checkout = _start()
        checkout.complete("order-1")
        events_before = len(checkout._events)
        checkout.complete("order-1")
        assert len(checkout._events) == events_before

    def test_completing_for_another_order_is_refused(self):
        checkout = _start()
        checkout.complete("order-1")
        with pytest.raises(ValidationError):
            checkout.complete("order-2")


def test_normalize_email():
    assert normalize_email(" A@B.Com ") == "a@b.com"
    assert normalize_email(None) == ""

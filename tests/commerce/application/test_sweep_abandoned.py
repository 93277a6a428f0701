"""Application tests for the abandoned-checkout sweep."""

from datetime import timedelta
from unittest import mock

from commerce.checkout.abandonment import AbandonCheckout
from commerce.checkout.checkout import Checkout, CheckoutStatus
from commerce.checkout.lifecycle import CheckoutLifecycleManager
from commerce.domain import commerce
from commerce.utils.clock import utcnow
from protean import current_domain
from protean.exceptions import ExpectedVersionError

CART = [{"product_ref": "p45b", "name": "P45B Cell", "quantity": 10, "unit_price": 4.5}]


def _manager(notifier):
    return CheckoutLifecycleManager(notifier=notifier, recovery_url_base="https://shop.test")


def _idle_cart(manager, email_address, idle_for=timedelta(hours=2)):
    return manager.record_checkout(email_address, CART, submitted_at=utcnow() - idle_for)


class TestSweepAbandoned:
    def test_idle_cart_is_abandoned_and_notified_once(self, notifier, email):
        manager = _manager(notifier)
        checkout_id = _idle_cart(manager, "buyer@example.com")

        assert manager.sweep_abandoned(idle_threshold=timedelta(hours=1)) == 1

        checkout = current_domain.repository_for(Checkout).get(checkout_id)
        assert checkout.status == CheckoutStatus.ABANDONED.value
        assert checkout.recovery_notified is True

        sent = email.sent_to("buyer@example.com")
        assert len(sent) == 1
        assert f"https://shop.test/cart?recovery={checkout_id}" in sent[0]["body"]

    def test_rerun_does_not_notify_again(self, notifier, email):
        manager = _manager(notifier)
        _idle_cart(manager, "buyer@example.com")

        manager.sweep_abandoned(idle_threshold=timedelta(hours=1))
        assert manager.sweep_abandoned(idle_threshold=timedelta(hours=1)) == 0
        assert len(email.sent_emails) == 1

    def test_recent_carts_are_left_open(self, notifier, email):
        manager = _manager(notifier)
        checkout_id = _idle_cart(manager, "buyer@example.com", idle_for=timedelta(minutes=10))

        assert manager.sweep_abandoned(idle_threshold=timedelta(hours=1)) == 0
        assert current_domain.repository_for(Checkout).get(checkout_id).is_open
        assert email.sent_emails == []

    def test_completed_carts_are_ignored(self, notifier, email):
        manager = _manager(notifier)
        checkout_id = _idle_cart(manager, "buyer@example.com")
        repo = current_domain.repository_for(Checkout)
        checkout = repo.get(checkout_id)
        checkout.complete("order-1")
        repo.add(checkout)

        assert manager.sweep_abandoned(idle_threshold=timedelta(hours=1)) == 0
        assert email.sent_emails == []

    def test_as_of_moves_the_clock(self, notifier):
        manager = _manager(notifier)
        _idle_cart(manager, "buyer@example.com", idle_for=timedelta(minutes=10))

        assert manager.sweep_abandoned(idle_threshold=timedelta(hours=1), as_of=utcnow() + timedelta(hours=2)) == 1

    def test_failed_send_keeps_cart_abandoned(self, notifier, email):
        manager = _manager(notifier)
        checkout_id = _idle_cart(manager, "bounce@example.com")
        email.fail_for("bounce@example.com")

        with mock.patch("commerce.checkout.lifecycle.logger") as logger:
            assert manager.sweep_abandoned(idle_threshold=timedelta(hours=1)) == 1

        checkout = current_domain.repository_for(Checkout).get(checkout_id)
        assert checkout.status == CheckoutStatus.ABANDONED.value
        assert checkout.recovery_notified is False
        reasons = [call.kwargs.get("reason") for call in logger.warning.call_args_list]
        assert "recovery_notification_failed" in reasons

        # a bouncing address is not retried by the next sweep
        email.reset()
        assert manager.sweep_abandoned(idle_threshold=timedelta(hours=1)) == 0
        assert email.attempts == []

    def test_store_failure_on_one_cart_does_not_stop_the_sweep(self, notifier, email):
        manager = _manager(notifier)
        _idle_cart(manager, "first@example.com")
        _idle_cart(manager, "second@example.com")

        real_process = commerce.process
        failed = []

        def flaky_process(command, asynchronous=True):
            if isinstance(command, AbandonCheckout) and not failed:
                failed.append(command.checkout_id)
                raise ExpectedVersionError("version mismatch")
            return real_process(command, asynchronous=asynchronous)

        with mock.patch.object(commerce, "process", side_effect=flaky_process):
            assert manager.sweep_abandoned(idle_threshold=timedelta(hours=1)) == 1

        assert len(failed) == 1
        assert len(email.sent_emails) == 1

    def test_overlapping_sweeps_notify_once(self, notifier, email):
        """A second sweep that read the same candidates loses the claim."""
        manager = _manager(notifier)
        checkout_id = _idle_cart(manager, "buyer@example.com")
        repo = current_domain.repository_for(Checkout)
        stale_candidates = repo.idle_open(utcnow() - timedelta(hours=1))

        manager.sweep_abandoned(idle_threshold=timedelta(hours=1))
        with mock.patch.object(type(repo), "idle_open", return_value=stale_candidates):
            assert manager.sweep_abandoned(idle_threshold=timedelta(hours=1)) == 0

        assert len(email.sent_to("buyer@example.com")) == 1
        assert repo.get(checkout_id).status == CheckoutStatus.ABANDONED.value

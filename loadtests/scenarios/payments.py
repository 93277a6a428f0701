"""Payment-side scenarios: confirmation polls and webhook deliveries.

Against a local server running the fake gateway no session is known, so a
confirmation poll answers 404. That still exercises the idempotency check
and the gateway round trip, and is counted as success here. Webhooks are
signed with the local secret; tampered ones must be refused with 400.
"""

from locust import SequentialTaskSet, task

from loadtests.data_generators import payment_event, session_id, sign
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import ConfirmationState

_CONFIRM_OK = (200, 202, 404)


class DuplicateConfirmationJourney(SequentialTaskSet):
    """The customer's browser polls confirm while the webhook may be landing too."""

    def on_start(self):
        self.state = ConfirmationState(session_id=session_id())

    @task
    def poll_confirm(self):
        for _ in range(3):
            with self.client.get(
                "/orders/confirm",
                params={"session_id": self.state.session_id},
                catch_response=True,
                name="GET /orders/confirm",
            ) as resp:
                self.state.polls += 1
                if resp.status_code not in _CONFIRM_OK:
                    resp.failure(f"Confirm failed: {resp.status_code}: {extract_error_detail(resp)}")
                    continue
                resp.success()
                if resp.status_code == 200:
                    order_id = resp.json()["order_id"]
                    if self.state.order_id and order_id != self.state.order_id:
                        resp.failure(f"Second order for one session: {order_id} != {self.state.order_id}")
                    self.state.order_id = order_id

    @task
    def webhook_for_same_session(self):
        payload = payment_event("checkout.session.completed", self.state.session_id)
        with self.client.post(
            "/payments/webhook",
            data=payload,
            headers={"Stripe-Signature": sign(payload), "Content-Type": "application/json"},
            catch_response=True,
            name="POST /payments/webhook (completed)",
        ) as resp:
            if resp.status_code in _CONFIRM_OK:
                resp.success()
            else:
                resp.failure(f"Webhook failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class WebhookNoiseJourney(SequentialTaskSet):
    """Unrelated event types and forged signatures."""

    @task
    def unrelated_event(self):
        payload = payment_event("invoice.paid")
        with self.client.post(
            "/payments/webhook",
            data=payload,
            headers={"Stripe-Signature": sign(payload), "Content-Type": "application/json"},
            catch_response=True,
            name="POST /payments/webhook (ignored)",
        ) as resp:
            if resp.status_code != 200 or resp.json().get("order_id") is not None:
                resp.failure(f"Ignored event mishandled: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def forged_signature(self):
        payload = payment_event("checkout.session.completed")
        with self.client.post(
            "/payments/webhook",
            data=payload,
            headers={"Stripe-Signature": sign(payload, secret="whsec_forged"), "Content-Type": "application/json"},
            catch_response=True,
            name="POST /payments/webhook (forged)",
        ) as resp:
            if resp.status_code == 400:
                resp.success()
            else:
                resp.failure(f"Forged webhook not rejected: {resp.status_code}")

    @task
    def done(self):
        self.interrupt()

"""Checkout load test scenarios.

Storefront visitors post their whole cart on every change. These journeys
exercise the snapshot-update path (same email, same open cart) and the
pricing endpoints a storefront calls between submissions.
"""

import random

from locust import SequentialTaskSet, task

from loadtests.data_generators import adjust_cart, cart_items, checkout_data, shopper_email, voucher_code
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import ShopperState
from loadtests.scenarios.seeding import ensure_catalogue


class CheckoutJourney(SequentialTaskSet):
    """Record cart -> resubmit twice -> quote -> validate voucher.

    Every resubmission must come back with the same checkout id.
    """

    def on_start(self):
        ensure_catalogue(self.client)
        self.state = ShopperState(email=shopper_email(), items=cart_items())
        if random.random() < 0.5:
            self.state.voucher_code = voucher_code()

    def _submit(self, name: str):
        payload = checkout_data(self.state.email, self.state.items, voucher_code=self.state.voucher_code)
        with self.client.post("/checkouts", json=payload, catch_response=True, name=name) as resp:
            if resp.status_code != 201:
                resp.failure(f"Record checkout failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()
                return

            checkout_id = resp.json()["checkout_id"]
            if self.state.checkout_id and checkout_id != self.state.checkout_id:
                resp.failure(f"Resubmission opened a second cart: {checkout_id} != {self.state.checkout_id}")
            self.state.checkout_id = checkout_id
            self.state.submissions += 1

    @task
    def record_checkout(self):
        self._submit("POST /checkouts")

    @task
    def resubmit_checkout(self):
        for _ in range(2):
            self.state.items = adjust_cart(self.state.items)
            self._submit("POST /checkouts (resubmit)")

    @task
    def quote(self):
        payload = {"items": self.state.items, "shipping_cost": 4.95}
        if self.state.voucher_code:
            payload["voucher_code"] = self.state.voucher_code
        with self.client.post("/checkouts/quote", json=payload, catch_response=True, name="POST /checkouts/quote") as resp:
            if resp.status_code != 200:
                resp.failure(f"Quote failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def validate_voucher(self):
        if not self.state.voucher_code:
            return
        with self.client.post(
            "/vouchers/validate",
            json={"code": self.state.voucher_code, "items": self.state.items},
            catch_response=True,
            name="POST /vouchers/validate",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Voucher validation failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class WindowShopperJourney(SequentialTaskSet):
    """Record a cart once and leave. These are what the abandonment sweep picks up."""

    def on_start(self):
        ensure_catalogue(self.client)

    @task
    def record_and_leave(self):
        payload = checkout_data(shopper_email(), cart_items(max_lines=1))
        with self.client.post("/checkouts", json=payload, catch_response=True, name="POST /checkouts") as resp:
            if resp.status_code != 201:
                resp.failure(f"Record checkout failed: {resp.status_code}: {extract_error_detail(resp)}")
        self.interrupt()

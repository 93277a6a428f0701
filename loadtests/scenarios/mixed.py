"""Mixed storefront workload and the scheduled sweep.

MixedWorkloadUser weights journeys the way storefront traffic arrives:
mostly inventory reads, then cart submissions, then the payment side.
SweepUser plays the external scheduler that triggers the abandonment sweep.
"""

import os

from locust import HttpUser, between, constant, task

from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.checkout import CheckoutJourney, WindowShopperJourney
from loadtests.scenarios.payments import DuplicateConfirmationJourney, WebhookNoiseJourney
from loadtests.scenarios.storefront import InventoryBrowsing, VoucherChecks


class MixedWorkloadUser(HttpUser):
    """Realistic storefront traffic.

    Reads (50%): live inventory feed, voucher box checks
    Carts (35%): full checkout journeys, one-shot window shoppers
    Payments (15%): confirmation polls racing webhooks, webhook noise
    """

    wait_time = between(0.5, 3.0)
    tasks = {
        InventoryBrowsing: 40,
        VoucherChecks: 10,
        CheckoutJourney: 25,
        WindowShopperJourney: 10,
        DuplicateConfirmationJourney: 10,
        WebhookNoiseJourney: 5,
    }


class SweepUser(HttpUser):
    """A single scheduler hitting the maintenance endpoint every half minute."""

    fixed_count = 1
    wait_time = constant(30)

    @task
    def sweep(self):
        headers = {}
        secret = os.environ.get("SWEEP_SECRET")
        if secret:
            headers["Authorization"] = f"Bearer {secret}"
        with self.client.post(
            "/maintenance/abandoned-checkouts",
            headers=headers,
            catch_response=True,
            name="POST /maintenance/abandoned-checkouts",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Sweep failed: {resp.status_code}: {extract_error_detail(resp)}")

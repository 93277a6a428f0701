"""Storefront read scenarios: the live inventory feed and voucher checks.

The live feed is polled by every product page, so it is the highest-volume
read in the system.
"""

import random

from locust import TaskSet, task

from loadtests.data_generators import CATALOGUE, voucher_code
from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.seeding import ensure_catalogue


class InventoryBrowsing(TaskSet):
    def on_start(self):
        ensure_catalogue(self.client)

    @task(5)
    def full_feed(self):
        with self.client.get("/inventory/live", catch_response=True, name="GET /inventory/live") as resp:
            if resp.status_code != 200:
                resp.failure(f"Live feed failed: {resp.status_code}: {extract_error_detail(resp)}")
            elif not resp.json()["products"]:
                resp.failure("Live feed is empty")

    @task(3)
    def product_page(self):
        slugs = [product["slug"] for product in random.sample(CATALOGUE, k=2)]
        with self.client.get(
            "/inventory/live",
            params={"ids": ",".join(slugs)},
            catch_response=True,
            name="GET /inventory/live?ids",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Filtered feed failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task(1)
    def volume_tiers(self):
        self.client.get("/inventory/volume-tiers", name="GET /inventory/volume-tiers")

    @task(1)
    def stop(self):
        self.interrupt()


class VoucherChecks(TaskSet):
    """Codes typed into the voucher box, typos included. Rejections are verdicts, not errors."""

    def on_start(self):
        ensure_catalogue(self.client)

    @task
    def check_code(self):
        with self.client.post(
            "/vouchers/validate",
            json={"code": voucher_code(hit_rate=0.6)},
            catch_response=True,
            name="POST /vouchers/validate (code only)",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Voucher check failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def stop(self):
        self.interrupt()

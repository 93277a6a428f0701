"""Catalogue seeding shared by every scenario.

Products, LIVE batches, vouchers and volume tiers are created once per
Locust worker process. Re-running against a seeded database is harmless:
duplicates come back as 400 and count as success here.
"""

import uuid

from loadtests.data_generators import CATALOGUE, VOLUME_TIERS, VOUCHERS
from loadtests.helpers.response import extract_error_detail

_seeded = False


def _post(client, path: str, payload: dict, name: str) -> dict | None:
    with client.post(path, json=payload, catch_response=True, name=name) as resp:
        if resp.status_code in (200, 201):
            resp.success()
            return resp.json()
        if resp.status_code == 400:
            # already seeded by an earlier run
            resp.success()
            return None
        resp.failure(f"Seeding failed: {resp.status_code}: {extract_error_detail(resp)}")
        return None


def ensure_catalogue(client) -> None:
    global _seeded
    if _seeded:
        return

    for product in CATALOGUE:
        created = _post(client, "/inventory/products", product, name="POST /inventory/products (seed)")
        if created is None:
            continue
        _post(
            client,
            "/inventory/batches",
            {
                "product_slug": product["slug"],
                "code": f"{product['slug'].upper()}-LT-{uuid.uuid4().hex[:6]}",
                "stock_quantity": 100_000,
                "status": "LIVE",
            },
            name="POST /inventory/batches (seed)",
        )

    for voucher in VOUCHERS:
        _post(client, "/vouchers", voucher, name="POST /vouchers (seed)")

    for tier in VOLUME_TIERS:
        _post(client, "/inventory/volume-tiers", tier, name="POST /inventory/volume-tiers (seed)")

    _seeded = True

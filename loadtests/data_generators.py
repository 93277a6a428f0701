"""Faker-based data generators for Locust load test scenarios.

Payloads match the field names of the Commerce API request schemas. The
catalogue below is seeded by `ensure_catalogue` before shoppers start, so
cart lines always point at real product slugs.
"""

import hashlib
import hmac
import json
import random
import time
import uuid

from faker import Faker

fake = Faker("en_GB")

# Signing secret of the fake gateway a local server runs with
WEBHOOK_SECRET = "whsec_local"

CATALOGUE = [
    {"slug": "p45b", "name": "P45B Power Cell", "price": 4.5, "category": "POWER"},
    {"slug": "p30", "name": "P30 Power Cell", "price": 3.0, "category": "POWER"},
    {"slug": "e12", "name": "E12 Energy Pack", "price": 12.0, "category": "ENERGY"},
    {"slug": "e20", "name": "E20 Energy Pack", "price": 19.5, "category": "ENERGY"},
    {"slug": "proto-x1", "name": "X1 Prototype", "price": 49.0, "category": "PROTOTYPE"},
]

VOUCHERS = [
    {"code": "LOAD10", "voucher_type": "PERCENT", "value": 10},
    {"code": "CELL399", "voucher_type": "FIXED_PRICE", "value": 3.99, "product_ids": ["p45b"], "max_usage_per_cart": 20},
    {"code": "FIVEOFF", "voucher_type": "FIXED_AMOUNT", "value": 5, "min_spend": 30},
    {"code": "SHIPFREE", "voucher_type": "FIXED_AMOUNT", "value": 0, "is_free_shipping": True},
]

VOLUME_TIERS = [
    {"min_quantity": 10, "discount_percent": 5},
    {"min_quantity": 50, "discount_percent": 10},
]


def shopper_email() -> str:
    """Unique per call so every visitor gets a cart of their own."""
    return f"{fake.user_name()[:20]}.{uuid.uuid4().hex[:6]}@{fake.free_email_domain()}"


def cart_items(max_lines: int = 3) -> list[dict]:
    products = random.sample([p for p in CATALOGUE if p["category"] != "PROTOTYPE"], k=random.randint(1, max_lines))
    return [
        {
            "product_ref": product["slug"],
            "name": product["name"],
            "quantity": random.choice([1, 2, 5, 10, 12, 25, 60]),
            "unit_price": product["price"],
        }
        for product in products
    ]


def adjust_cart(items: list[dict]) -> list[dict]:
    """The visitor changed a quantity, as a storefront resubmission would carry."""
    changed = [dict(item) for item in items]
    line = random.choice(changed)
    line["quantity"] = max(1, line["quantity"] + random.choice([-1, 1, 5]))
    return changed


def shipping_details() -> dict:
    return {
        "name": fake.name()[:200],
        "line1": fake.street_address()[:255],
        "city": fake.city()[:100],
        "postal_code": fake.postcode()[:20],
        "country": "GB",
        "cost": random.choice([0.0, 3.5, 4.95]),
    }


def checkout_data(email: str, items: list[dict], voucher_code: str | None = None, session_id: str | None = None) -> dict:
    payload = {"email": email, "items": items, "shipping": shipping_details()}
    if voucher_code:
        payload["voucher_code"] = voucher_code
    if session_id:
        payload["session_id"] = session_id
    return payload


def voucher_code(hit_rate: float = 0.8) -> str:
    """Mostly real codes, sometimes a typo."""
    if random.random() < hit_rate:
        return random.choice(VOUCHERS)["code"]
    return fake.bothify("????##").upper()


def session_id() -> str:
    return f"cs_load_{uuid.uuid4().hex[:20]}"


def payment_event(event_type: str, session: str | None = None) -> str:
    return json.dumps(
        {
            "id": f"evt_load_{uuid.uuid4().hex[:16]}",
            "type": event_type,
            "data": {"object": {"id": session or session_id(), "object": "checkout.session"}},
        }
    )


def sign(payload: str, secret: str = WEBHOOK_SECRET) -> str:
    """Stripe-style signature header for a webhook payload."""
    timestamp = int(time.time())
    digest = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"

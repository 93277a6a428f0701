"""Integration tests for checkout recording, quoting and the abandonment sweep."""

from datetime import timedelta

from commerce.checkout.checkout import Checkout, CheckoutStatus
from commerce.inventory.receiving import DefineVolumeTier
from commerce.utils.clock import utcnow
from protean import current_domain

CART = {
    "email": "buyer@example.com",
    "items": [{"product_ref": "p45b", "name": "P45B Cell", "quantity": 10, "unit_price": 4.5}],
    "shipping": {"name": "Ada Buyer", "city": "Leeds", "postal_code": "LS1 1AA", "cost": 4.95},
    "session_id": "cs_api_1",
}


class TestRecordCheckoutAPI:
    def test_create(self, client):
        response = client.post("/checkouts", json=CART)
        assert response.status_code == 201

        checkout = current_domain.repository_for(Checkout).get(response.json()["checkout_id"])
        assert checkout.session_id == "cs_api_1"
        assert checkout.shipping.cost == 4.95

    def test_resubmission_returns_same_id(self, client):
        first = client.post("/checkouts", json=CART).json()["checkout_id"]
        updated = {**CART, "items": [{**CART["items"][0], "quantity": 12}]}
        assert client.post("/checkouts", json=updated).json()["checkout_id"] == first

    def test_unknown_fields_are_rejected(self, client):
        response = client.post("/checkouts", json={**CART, "coupon": "X"})
        assert response.status_code == 422

    def test_empty_cart_is_rejected(self, client):
        response = client.post("/checkouts", json={**CART, "items": []})
        assert response.status_code == 422


class TestQuoteAPI:
    def test_volume_tier_and_voucher(self, client, voucher):
        current_domain.process(DefineVolumeTier(min_quantity=10, discount_percent=10.0), asynchronous=False)
        voucher("SAVE10", "PERCENT", 10)

        response = client.post(
            "/checkouts/quote",
            json={"items": CART["items"], "voucher_code": "save10", "shipping_cost": 4.95},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["list_subtotal"] == 45.0
        assert data["volume_savings"] == 4.5
        assert data["subtotal"] == 40.5
        assert data["discount_total"] == 4.05
        assert data["total"] == round(40.5 - 4.05 + 4.95, 2)
        assert data["voucher_applied"] is True

    def test_unknown_voucher_prices_without_it(self, client):
        response = client.post("/checkouts/quote", json={"items": CART["items"], "voucher_code": "NOPE"})
        data = response.json()
        assert data["voucher_applied"] is False
        assert data["reason_code"] == "CODE_NOT_FOUND"
        assert data["total"] == 45.0


class TestSweepAPI:
    def _idle_cart(self, services):
        return services.lifecycle.record_checkout(
            "idle@example.com", CART["items"], submitted_at=utcnow() - timedelta(hours=3)
        )

    def test_sweep(self, client, services, email):
        checkout_id = self._idle_cart(services)

        response = client.post(
            "/maintenance/abandoned-checkouts",
            headers={"Authorization": f"Bearer {services.sweep_secret}"},
        )

        assert response.status_code == 200
        assert response.json() == {"abandoned_count": 1}
        assert current_domain.repository_for(Checkout).get(checkout_id).status == CheckoutStatus.ABANDONED.value
        assert len(email.sent_to("idle@example.com")) == 1

    def test_sweep_is_open_without_a_secret(self, client, services):
        services.sweep_secret = None
        self._idle_cart(services)

        response = client.post("/maintenance/abandoned-checkouts")

        assert response.status_code == 200
        assert response.json() == {"abandoned_count": 1}

    def test_secret_required_when_configured(self, client, services):
        services.sweep_secret = "s3cret"
        self._idle_cart(services)

        assert client.post("/maintenance/abandoned-checkouts").status_code == 401
        assert (
            client.post("/maintenance/abandoned-checkouts", headers={"Authorization": "Bearer wrong"}).status_code
            == 401
        )

        response = client.post("/maintenance/abandoned-checkouts", headers={"Authorization": "Bearer s3cret"})
        assert response.status_code == 200
        assert response.json()["abandoned_count"] == 1

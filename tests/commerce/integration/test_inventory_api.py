"""Integration tests for the live inventory and stock intake endpoints."""


def _register(client, slug="p45b", price=4.5, category="POWER"):
    response = client.post("/inventory/products", json={"slug": slug, "name": slug.upper(), "price": price, "category": category})
    assert response.status_code == 201
    return response.json()["product_id"]


def _receive(client, slug, quantity, code, status="LIVE"):
    response = client.post(
        "/inventory/batches",
        json={"product_slug": slug, "code": code, "stock_quantity": quantity, "status": status},
    )
    assert response.status_code == 201
    return response.json()["batch_id"]


class TestLiveInventoryAPI:
    def test_live_feed(self, client):
        _register(client, "p45b", 4.5)
        _register(client, "proto-x", 9.0, category="PROTOTYPE")
        _receive(client, "p45b", 12, "P45B-1")
        _receive(client, "p45b", 40, "P45B-2", status="PENDING")
        client.post("/inventory/volume-tiers", json={"min_quantity": 10, "discount_percent": 5})

        response = client.get("/inventory/live")

        assert response.status_code == 200
        data = response.json()
        assert data["products"]["p45b"] == {"price": 4.5, "stock": 12, "tier": "LOW_STOCK"}
        assert data["products"]["proto-x"]["tier"] == "COMING_SOON"
        assert data["volume_discounts"] == [{"min_quantity": 10, "discount_percent": 5.0}]

    def test_filter_by_ids(self, client):
        _register(client, "p45b")
        _register(client, "p30")
        response = client.get("/inventory/live", params={"ids": "P45B,ghost"})
        assert list(response.json()["products"]) == ["p45b"]

    def test_batch_goes_live_and_restocks(self, client):
        _register(client, "p45b")
        batch_id = _receive(client, "p45b", 30, "P45B-1", status="PENDING")

        assert client.get("/inventory/live").json()["products"]["p45b"]["stock"] == 0

        assert client.post(f"/inventory/batches/{batch_id}/status", json={"status": "LIVE"}).json() == {"status": "LIVE"}
        assert client.post(f"/inventory/batches/{batch_id}/restock", json={"quantity": 5}).status_code == 200

        entry = client.get("/inventory/live").json()["products"]["p45b"]
        assert entry == {"price": 4.5, "stock": 35, "tier": "IN_STOCK"}

    def test_duplicate_product(self, client):
        _register(client, "p45b")
        response = client.post("/inventory/products", json={"slug": "p45b", "name": "Again", "price": 1.0})
        assert response.status_code == 400

    def test_batch_for_unknown_product(self, client):
        response = client.post("/inventory/batches", json={"product_slug": "ghost", "code": "G", "stock_quantity": 1})
        assert response.status_code == 404


class TestVolumeTierAPI:
    def test_define_list_deactivate(self, client):
        assert client.post("/inventory/volume-tiers", json={"min_quantity": 50, "discount_percent": 10}).status_code == 201
        client.post("/inventory/volume-tiers", json={"min_quantity": 10, "discount_percent": 5})

        assert [tier["min_quantity"] for tier in client.get("/inventory/volume-tiers").json()] == [10, 50]

        assert client.post("/inventory/volume-tiers/50/deactivate").json() == {"status": "deactivated"}
        assert [tier["min_quantity"] for tier in client.get("/inventory/volume-tiers").json()] == [10]

    def test_deactivate_unknown(self, client):
        assert client.post("/inventory/volume-tiers/999/deactivate").status_code == 404

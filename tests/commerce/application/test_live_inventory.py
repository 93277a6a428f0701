"""Application tests for live availability, volume tiers and stock intake."""

import pytest
from commerce.inventory.batch import Batch, BatchStatus
from commerce.inventory.live import LiveInventory, StockTier
from commerce.inventory.product import Product
from commerce.inventory.receiving import (
    ChangeBatchStatus,
    DeactivateVolumeTier,
    DefineVolumeTier,
    ReceiveBatch,
    RegisterProduct,
    RestockBatch,
)
from commerce.inventory.volume_discount import VolumeDiscount
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


class TestGetAvailability:
    def test_only_live_batches_count(self, stock):
        stock("p45b", 5, price=4.5)
        stock("p45b", 15)
        stock("p45b", 100, status="PENDING")

        availability = LiveInventory(low_stock_threshold=20).get_availability(["p45b"])

        entry = availability["p45b"]
        assert entry.stock == 20
        assert entry.tier == StockTier.LOW_STOCK
        assert entry.price == 4.5

    def test_no_live_batches_is_out_of_stock(self, stock):
        stock("p30", 50, status="PENDING")
        entry = LiveInventory().get_availability(["p30"])["p30"]
        assert entry.stock == 0
        assert entry.tier == StockTier.OUT_OF_STOCK

    def test_product_without_batches(self):
        current_domain.process(RegisterProduct(slug="p20", name="P20", price=2.0), asynchronous=False)
        assert LiveInventory().get_availability(["p20"])["p20"].tier == StockTier.OUT_OF_STOCK

    def test_in_stock_above_threshold(self, stock):
        stock("p45b", 21)
        assert LiveInventory(low_stock_threshold=20).get_availability()["p45b"].tier == StockTier.IN_STOCK

    def test_prototype_is_coming_soon(self, stock):
        stock("proto-x", 40, category="PROTOTYPE")
        assert LiveInventory().get_availability()["proto-x"].tier == StockTier.COMING_SOON

    def test_unknown_slugs_are_absent(self, stock):
        stock("p45b", 10)
        assert set(LiveInventory().get_availability(["p45b", "nope"])) == {"p45b"}

    def test_slug_filter_is_case_insensitive(self, stock):
        stock("p45b", 10)
        assert "p45b" in LiveInventory().get_availability([" P45B "])

    def test_empty_filter_returns_nothing(self, stock):
        stock("p45b", 10)
        assert LiveInventory().get_availability(["", "  "]) == {}

    def test_no_filter_returns_the_whole_catalog(self, stock):
        stock("p45b", 10)
        stock("p30", 10)
        assert set(LiveInventory().get_availability()) == {"p30", "p45b"}

    def test_reflects_committed_draws_immediately(self, stock):
        batch_id = stock("p45b", 10)
        inventory = LiveInventory()
        assert inventory.get_availability(["p45b"])["p45b"].stock == 10

        repo = current_domain.repository_for(Batch)
        batch = repo.get(batch_id)
        batch.draw(4)
        repo.add(batch)

        assert inventory.get_availability(["p45b"])["p45b"].stock == 6

    def test_threshold_defaults_to_configuration(self):
        assert LiveInventory().threshold == current_domain.LOW_STOCK_THRESHOLD


class TestShortfalls:
    def test_reports_requested_versus_available(self, stock):
        stock("p45b", 5)
        stock("p30", 50)
        missing = LiveInventory().shortfalls(
            [
                {"product_ref": "p45b", "quantity": 4},
                {"product_ref": "P45B", "quantity": 2},
                {"product_ref": "p30", "quantity": 10},
                {"product_ref": "ghost", "quantity": 1},
            ]
        )
        assert [(m.product_ref, m.requested, m.available) for m in missing] == [("p45b", 6, 5), ("ghost", 1, 0)]

    def test_no_shortfall(self, stock):
        stock("p45b", 5)
        assert LiveInventory().shortfalls([{"product_ref": "p45b", "quantity": 5}]) == []


class TestVolumeTiers:
    def test_active_tiers_ascending(self):
        for min_quantity, percent in [(50, 10.0), (10, 5.0), (100, 15.0)]:
            current_domain.process(
                DefineVolumeTier(min_quantity=min_quantity, discount_percent=percent), asynchronous=False
            )
        current_domain.process(DeactivateVolumeTier(min_quantity=100), asynchronous=False)

        tiers = LiveInventory().get_volume_tiers()
        assert [(tier.min_quantity, tier.discount_percent) for tier in tiers] == [(10, 5.0), (50, 10.0)]

    def test_redefining_a_tier_updates_it(self):
        first = current_domain.process(DefineVolumeTier(min_quantity=10, discount_percent=5.0), asynchronous=False)
        second = current_domain.process(DefineVolumeTier(min_quantity=10, discount_percent=8.0), asynchronous=False)
        assert first == second
        assert current_domain.repository_for(VolumeDiscount).get(first).discount_percent == 8.0

    def test_deactivating_unknown_tier(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(DeactivateVolumeTier(min_quantity=999), asynchronous=False)


class TestStockIntake:
    def test_register_product_normalizes_slug(self):
        product_id = current_domain.process(
            RegisterProduct(slug=" P45B ", name="P45B Cell", price=4.5, category="ENERGY"), asynchronous=False
        )
        product = current_domain.repository_for(Product).get(product_id)
        assert product.slug == "p45b"
        assert product.category == "ENERGY"

    def test_duplicate_slug_is_refused(self):
        current_domain.process(RegisterProduct(slug="p45b", name="P45B", price=4.5), asynchronous=False)
        with pytest.raises(ValidationError):
            current_domain.process(RegisterProduct(slug="p45b", name="Other", price=1.0), asynchronous=False)

    def test_batch_for_unknown_product(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(
                ReceiveBatch(product_slug="ghost", code="G-1", stock_quantity=5), asynchronous=False
            )

    def test_batch_goes_live(self, stock):
        batch_id = stock("p45b", 30, status="PENDING")
        current_domain.process(ChangeBatchStatus(batch_id=batch_id, status="LIVE"), asynchronous=False)
        assert current_domain.repository_for(Batch).get(batch_id).status == BatchStatus.LIVE.value
        assert LiveInventory().get_availability(["p45b"])["p45b"].stock == 30

    def test_restock(self, stock):
        batch_id = stock("p45b", 3)
        current_domain.process(RestockBatch(batch_id=batch_id, quantity=7), asynchronous=False)
        assert current_domain.repository_for(Batch).get(batch_id).stock_quantity == 10

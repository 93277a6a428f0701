"""Domain tests for stock tier classification and volume discount rules."""

import pytest
from commerce.inventory.live import StockTier, classify_tier, requested_quantities
from commerce.inventory.volume_discount import VolumeDiscount
from protean.exceptions import ValidationError


class TestClassifyTier:
    @pytest.mark.parametrize(
        "stock, expected",
        [
            (0, StockTier.OUT_OF_STOCK),
            (-3, StockTier.OUT_OF_STOCK),
            (1, StockTier.LOW_STOCK),
            (20, StockTier.LOW_STOCK),
            (21, StockTier.IN_STOCK),
        ],
    )
    def test_power_products(self, stock, expected):
        assert classify_tier(stock, "POWER", threshold=20) == expected

    def test_prototypes_are_always_coming_soon(self):
        assert classify_tier(500, "PROTOTYPE") == StockTier.COMING_SOON
        assert classify_tier(0, "PROTOTYPE") == StockTier.COMING_SOON

    def test_threshold_is_configurable(self):
        assert classify_tier(8, "ENERGY", threshold=5) == StockTier.IN_STOCK


class TestRequestedQuantities:
    def test_sums_repeated_refs_case_insensitively(self):
        totals = requested_quantities(
            [
                {"product_ref": "P45B", "quantity": 2},
                {"product_ref": "p30", "quantity": 1},
                {"product_ref": " p45b ", "quantity": 3},
            ]
        )
        assert list(totals.items()) == [("p45b", 5), ("p30", 1)]


class TestVolumeDiscount:
    def test_define(self):
        tier = VolumeDiscount.define(10, 5.0)
        assert tier.min_quantity == 10
        assert tier.discount_percent == 5.0
        assert tier.active

    @pytest.mark.parametrize("percent", [0, -1, 100.5])
    def test_percent_must_be_in_range(self, percent):
        with pytest.raises(ValidationError):
            VolumeDiscount.define(10, percent)

    def test_redefine_reactivates(self):
        tier = VolumeDiscount.define(10, 5.0)
        tier.deactivate()
        tier.redefine(7.5)
        assert tier.active
        assert tier.discount_percent == 7.5

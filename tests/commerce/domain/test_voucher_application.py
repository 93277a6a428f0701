"""Tests for applying a voucher's discount to cart lines, and for cart quotes."""

from commerce.checkout.pricing import apply_volume_tiers, quote, tier_for
from commerce.inventory.live import VolumeTier
from commerce.voucher.application import apply_voucher, without_voucher
from commerce.voucher.validation import DiscountDescriptor, ReasonCode, VoucherVerdict

LINES = [
    {"product_ref": "p45b", "name": "P45B Cell", "quantity": 4, "unit_price": 10.0},
    {"product_ref": "p30", "name": "P30 Cell", "quantity": 2, "unit_price": 5.0},
]


def _discount(voucher_type="PERCENT", value=10.0, **kwargs):
    return DiscountDescriptor(code="TEST", voucher_type=voucher_type, value=value, **kwargs)


class TestWithoutVoucher:
    def test_totals(self):
        pricing = without_voucher(LINES, shipping_cost=4.95)
        assert pricing.subtotal == 50.0
        assert pricing.discount_total == 0.0
        assert pricing.total == 54.95
        assert not pricing.applied
        assert not pricing.reduced_price


class TestPercent:
    def test_every_line(self):
        pricing = apply_voucher(LINES, _discount(value=10))
        assert pricing.applied
        assert [line.discount for line in pricing.lines] == [4.0, 1.0]
        assert pricing.discount_total == 5.0
        assert pricing.total == 45.0

    def test_allowlist_is_case_insensitive(self):
        pricing = apply_voucher(LINES, _discount(value=10, product_ids=("P30",)))
        assert [line.discount for line in pricing.lines] == [0.0, 1.0]

    def test_per_cart_cap_counts_units_earliest_lines_first(self):
        pricing = apply_voucher(LINES, _discount(value=50, max_usage_per_cart=5))
        # 4 units of p45b, then 1 unit of p30
        assert [line.discount for line in pricing.lines] == [20.0, 2.5]


class TestFixedPrice:
    def test_sets_unit_price(self):
        pricing = apply_voucher(LINES, _discount("FIXED_PRICE", 6.0))
        assert [line.discount for line in pricing.lines] == [16.0, 0.0]
        assert pricing.total == 34.0

    def test_never_raises_a_price(self):
        pricing = apply_voucher(LINES, _discount("FIXED_PRICE", 20.0))
        assert not pricing.applied
        assert pricing.reason_code == ReasonCode.NO_ELIGIBLE_ITEMS
        assert pricing.total == 50.0


class TestFixedAmount:
    def test_cart_level_reduction(self):
        pricing = apply_voucher(LINES, _discount("FIXED_AMOUNT", 7.5))
        assert pricing.discount_total == 7.5
        assert pricing.total == 42.5

    def test_capped_at_eligible_subtotal(self):
        pricing = apply_voucher(LINES, _discount("FIXED_AMOUNT", 100.0, product_ids=("p30",)))
        assert pricing.discount_total == 10.0
        assert pricing.total == 40.0

    def test_total_never_negative(self):
        pricing = apply_voucher(LINES, _discount("FIXED_AMOUNT", 500.0), shipping_cost=0.0)
        assert pricing.total == 0.0


class TestConditions:
    def test_min_spend_not_met(self):
        pricing = apply_voucher(LINES, _discount(min_spend=60.0))
        assert not pricing.applied
        assert pricing.reason_code == ReasonCode.MIN_SPEND_NOT_MET
        assert pricing.discount_total == 0.0

    def test_min_spend_met_exactly(self):
        assert apply_voucher(LINES, _discount(min_spend=50.0)).applied

    def test_no_line_on_allowlist(self):
        pricing = apply_voucher(LINES, _discount(product_ids=("other",)))
        assert pricing.reason_code == ReasonCode.NO_ELIGIBLE_ITEMS

    def test_free_shipping(self):
        pricing = apply_voucher(LINES, _discount(value=0.0, free_shipping=True), shipping_cost=4.95)
        assert pricing.applied
        assert pricing.shipping_cost == 0.0
        assert pricing.total == 50.0
        assert pricing.reduced_price

    def test_free_shipping_with_nothing_to_waive_does_not_reduce_price(self):
        pricing = apply_voucher(LINES, _discount(value=0.0, free_shipping=True), shipping_cost=0.0)
        assert pricing.applied
        assert not pricing.reduced_price


class TestVolumeTiers:
    TIERS = [VolumeTier(10, 5.0), VolumeTier(50, 10.0)]

    def test_highest_reached_tier_wins(self):
        assert tier_for(9, self.TIERS) is None
        assert tier_for(10, self.TIERS).discount_percent == 5.0
        assert tier_for(75, self.TIERS).discount_percent == 10.0

    def test_tiers_apply_per_line(self):
        lines = [
            {"product_ref": "p45b", "quantity": 50, "unit_price": 4.0},
            {"product_ref": "p30", "quantity": 5, "unit_price": 4.0},
        ]
        tiered = apply_volume_tiers(lines, self.TIERS)
        assert [line.unit_price for line in tiered] == [3.6, 4.0]

    def test_quote_reports_volume_savings(self):
        lines = [{"product_ref": "p45b", "quantity": 10, "unit_price": 10.0}]
        result = quote(lines, self.TIERS)
        assert result.list_subtotal == 100.0
        assert result.pricing.subtotal == 95.0
        assert result.volume_savings == 5.0
        assert result.to_dict()["volume_savings"] == 5.0

    def test_min_spend_measured_after_tiers(self):
        lines = [{"product_ref": "p45b", "quantity": 10, "unit_price": 10.0}]
        verdict = VoucherVerdict(valid=True, discount=_discount(min_spend=98.0))
        result = quote(lines, self.TIERS, verdict)
        assert result.pricing.reason_code == ReasonCode.MIN_SPEND_NOT_MET

    def test_rejected_verdict_carries_reason(self):
        lines = [{"product_ref": "p45b", "quantity": 1, "unit_price": 10.0}]
        result = quote(lines, [], VoucherVerdict.rejected(ReasonCode.VOUCHER_EXPIRED), shipping_cost=3.0)
        assert result.pricing.total == 13.0
        assert result.to_dict()["reason_code"] == "VOUCHER_EXPIRED"

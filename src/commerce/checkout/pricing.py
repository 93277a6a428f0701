"""Cart pricing: volume tiers first, then the voucher.

Each line gets the highest tier its own quantity reaches. The voucher is
then applied to the tiered unit prices, so a minimum spend is measured
against what the customer would actually pay before the voucher.
"""

from dataclasses import dataclass

from commerce.inventory.live import VolumeTier
from commerce.voucher.application import PricedLine, VoucherApplication, apply_voucher, to_priced_lines, without_voucher
from commerce.voucher.validation import VoucherVerdict


@dataclass(frozen=True)
class Quote:
    pricing: VoucherApplication
    list_subtotal: float

    @property
    def volume_savings(self) -> float:
        return round(self.list_subtotal - self.pricing.subtotal, 2)

    def to_dict(self) -> dict:
        data = self.pricing.to_dict()
        data["list_subtotal"] = self.list_subtotal
        data["volume_savings"] = self.volume_savings
        return data


def tier_for(quantity: int, tiers: list[VolumeTier]) -> VolumeTier | None:
    reached = [tier for tier in tiers if quantity >= tier.min_quantity]
    return max(reached, key=lambda tier: tier.min_quantity) if reached else None


def apply_volume_tiers(lines, tiers: list[VolumeTier]) -> list[PricedLine]:
    tiered = []
    for line in to_priced_lines(lines):
        tier = tier_for(line.quantity, tiers)
        if tier is None:
            tiered.append(line)
            continue
        tiered.append(
            PricedLine(
                product_ref=line.product_ref,
                name=line.name,
                quantity=line.quantity,
                unit_price=round(line.unit_price * (1 - tier.discount_percent / 100), 2),
            )
        )
    return tiered


def quote(lines, tiers: list[VolumeTier], verdict: VoucherVerdict | None = None, shipping_cost: float = 0.0) -> Quote:
    listed = to_priced_lines(lines)
    tiered = apply_volume_tiers(listed, tiers)

    if verdict is None:
        pricing = without_voucher(tiered, shipping_cost)
    elif not verdict.valid:
        pricing = without_voucher(tiered, shipping_cost, verdict.reason_code)
    else:
        pricing = apply_voucher(tiered, verdict.discount, shipping_cost)

    return Quote(pricing=pricing, list_subtotal=round(sum(line.gross for line in listed), 2))

"""Applying a valid voucher to concrete cart lines.

Validation says whether a code may be used at all; this module works out
what it is worth for a given cart:

- a minimum spend not met makes the voucher inapplicable
- an allowlist restricts which lines are discounted (matched by product ref,
  case-insensitively; empty means every line)
- `max_usage_per_cart` caps how many units get the discount, earliest lines
  first
- PERCENT takes a percentage off each discounted unit
- FIXED_PRICE sells each discounted unit at the voucher value, never raising
  a price
- FIXED_AMOUNT is a single cart-level reduction, capped at what the eligible
  lines cost
- free shipping zeroes the shipping cost
"""

from dataclasses import dataclass

from commerce.voucher.validation import DiscountDescriptor, ReasonCode
from commerce.voucher.voucher import VoucherType


def _money(amount: float) -> float:
    return round(amount, 2)


@dataclass(frozen=True)
class PricedLine:
    product_ref: str
    name: str | None
    quantity: int
    unit_price: float
    discount: float = 0.0

    @property
    def gross(self) -> float:
        return _money(self.unit_price * self.quantity)

    @property
    def line_total(self) -> float:
        return _money(self.gross - self.discount)

    def to_dict(self) -> dict:
        return {
            "product_ref": self.product_ref,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "discount": self.discount,
            "line_total": self.line_total,
        }


@dataclass(frozen=True)
class VoucherApplication:
    lines: tuple[PricedLine, ...]
    subtotal: float
    discount_total: float
    shipping_cost: float
    total: float
    applied: bool = False
    reason_code: ReasonCode | None = None
    shipping_waived: float = 0.0

    @property
    def reduced_price(self) -> bool:
        """True when the voucher actually took money off the order."""
        return self.applied and (self.discount_total > 0 or self.shipping_waived > 0)

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "subtotal": self.subtotal,
            "discount_total": self.discount_total,
            "shipping_cost": self.shipping_cost,
            "total": self.total,
            "voucher_applied": self.applied,
            "reason_code": self.reason_code.value if self.reason_code else None,
        }


def to_priced_lines(lines) -> list[PricedLine]:
    """Accept dicts or objects with product_ref, name, quantity and unit_price."""
    priced = []
    for line in lines:
        if isinstance(line, PricedLine):
            priced.append(line)
        elif isinstance(line, dict):
            priced.append(
                PricedLine(
                    product_ref=line["product_ref"],
                    name=line.get("name"),
                    quantity=int(line["quantity"]),
                    unit_price=float(line["unit_price"]),
                )
            )
        else:
            priced.append(
                PricedLine(
                    product_ref=line.product_ref,
                    name=getattr(line, "name", None),
                    quantity=int(line.quantity),
                    unit_price=float(line.unit_price),
                )
            )
    return priced


def _total(subtotal: float, discount: float, shipping: float) -> float:
    return _money(max(0.0, subtotal - discount + shipping))


def without_voucher(lines, shipping_cost: float = 0.0, reason_code: ReasonCode | None = None) -> VoucherApplication:
    priced = tuple(to_priced_lines(lines))
    subtotal = _money(sum(line.gross for line in priced))
    shipping = _money(shipping_cost or 0.0)
    return VoucherApplication(
        lines=priced,
        subtotal=subtotal,
        discount_total=0.0,
        shipping_cost=shipping,
        total=_total(subtotal, 0.0, shipping),
        applied=False,
        reason_code=reason_code,
    )


def _eligible(line: PricedLine, allowlist: set[str]) -> bool:
    return not allowlist or line.product_ref.lower() in allowlist


def apply_voucher(lines, discount: DiscountDescriptor | None, shipping_cost: float = 0.0) -> VoucherApplication:
    if discount is None:
        return without_voucher(lines, shipping_cost)

    priced = to_priced_lines(lines)
    subtotal = _money(sum(line.gross for line in priced))
    shipping = _money(shipping_cost or 0.0)

    if discount.min_spend and subtotal < discount.min_spend:
        return without_voucher(priced, shipping, ReasonCode.MIN_SPEND_NOT_MET)

    allowlist = {ref.strip().lower() for ref in discount.product_ids if ref}
    quota = discount.max_usage_per_cart if discount.max_usage_per_cart else None
    voucher_type = VoucherType(discount.voucher_type)

    discounted_lines = []
    eligible_subtotal = 0.0
    for line in priced:
        if not _eligible(line, allowlist) or quota == 0:
            discounted_lines.append(line)
            continue

        units = line.quantity if quota is None else min(line.quantity, quota)
        if quota is not None:
            quota -= units
        eligible_subtotal += line.unit_price * units

        saving = 0.0
        if voucher_type == VoucherType.PERCENT:
            saving = line.unit_price * discount.value / 100 * units
        elif voucher_type == VoucherType.FIXED_PRICE and line.unit_price > discount.value:
            saving = (line.unit_price - discount.value) * units

        discounted_lines.append(
            PricedLine(
                product_ref=line.product_ref,
                name=line.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                discount=_money(saving),
            )
        )

    discount_total = sum(line.discount for line in discounted_lines)
    if voucher_type == VoucherType.FIXED_AMOUNT:
        discount_total += min(discount.value, eligible_subtotal)
    discount_total = _money(min(discount_total, subtotal))

    waived = shipping if discount.free_shipping else 0.0
    if discount_total <= 0 and waived <= 0 and not discount.free_shipping:
        return without_voucher(priced, shipping, ReasonCode.NO_ELIGIBLE_ITEMS)

    final_shipping = 0.0 if discount.free_shipping else shipping
    return VoucherApplication(
        lines=tuple(discounted_lines),
        subtotal=subtotal,
        discount_total=discount_total,
        shipping_cost=final_shipping,
        total=_total(subtotal, discount_total, final_shipping),
        applied=True,
        shipping_waived=waived,
    )

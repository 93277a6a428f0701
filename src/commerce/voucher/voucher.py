"""Voucher aggregate: a promotional code with usage and date constraints.

`used_count` only ever goes up, one step per paid order that the voucher
actually discounted. The increment is committed under the aggregate's
version, so two orders racing for the last use of a capped voucher cannot
both succeed: the loser re-reads, sees the cap and pays full price.
"""

from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, List, String

from commerce.domain import commerce
from commerce.utils.clock import as_utc, utcnow
from commerce.voucher.events import VoucherDisabled, VoucherIssued, VoucherRedeemed


class VoucherType(Enum):
    PERCENT = "PERCENT"
    FIXED_PRICE = "FIXED_PRICE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


@commerce.aggregate
class Voucher:
    code = String(required=True, max_length=50, unique=True)
    voucher_type = String(choices=VoucherType, default=VoucherType.PERCENT.value)
    discount_percent = Float(default=0.0, min_value=0.0, max_value=100.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    active = Boolean(default=True)
    min_spend = Float(min_value=0.0)
    product_ids = List(String(max_length=100))
    max_usage_per_cart = Integer(min_value=1)
    max_global_uses = Integer(min_value=0)
    used_count = Integer(default=0, min_value=0)
    start_date = DateTime()
    expiry_date = DateTime()
    is_free_shipping = Boolean(default=False)
    created_at = DateTime()

    @classmethod
    def issue(
        cls,
        code,
        voucher_type,
        value=0.0,
        min_spend=None,
        product_ids=None,
        max_usage_per_cart=None,
        max_global_uses=None,
        start_date=None,
        expiry_date=None,
        is_free_shipping=False,
    ):
        code = normalize_code(code)
        if not code:
            raise ValidationError({"code": ["Voucher code is required"]})

        voucher_type = VoucherType(voucher_type)
        if value <= 0 and not is_free_shipping:
            raise ValidationError({"value": ["A voucher must discount something"]})
        if voucher_type == VoucherType.PERCENT and value > 100:
            raise ValidationError({"value": ["Percentage cannot exceed 100"]})
        if start_date and expiry_date and as_utc(expiry_date) <= as_utc(start_date):
            raise ValidationError({"expiry_date": ["Expiry must be after the start date"]})

        now = utcnow()
        voucher = cls(
            code=code,
            voucher_type=voucher_type.value,
            discount_percent=value if voucher_type == VoucherType.PERCENT else 0.0,
            discount_amount=value if voucher_type != VoucherType.PERCENT else 0.0,
            min_spend=min_spend,
            product_ids=[ref.strip() for ref in (product_ids or []) if ref and ref.strip()],
            max_usage_per_cart=max_usage_per_cart,
            max_global_uses=max_global_uses,
            start_date=start_date or now,
            expiry_date=expiry_date,
            is_free_shipping=is_free_shipping,
            created_at=now,
        )
        voucher.raise_(
            VoucherIssued(
                voucher_id=str(voucher.id),
                code=code,
                voucher_type=voucher_type.value,
                issued_at=now,
            )
        )
        return voucher

    @property
    def value(self) -> float:
        if self.voucher_type == VoucherType.PERCENT.value:
            return self.discount_percent or 0.0
        return self.discount_amount or 0.0

    @property
    def is_capped(self) -> bool:
        """Zero or unset means unlimited."""
        return bool(self.max_global_uses)

    @property
    def uses_exhausted(self) -> bool:
        return self.is_capped and (self.used_count or 0) >= self.max_global_uses

    def redeem(self, order_reference: str | None = None):
        if self.uses_exhausted:
            raise ValidationError({"used_count": [f"Voucher {self.code} has no uses left"]})

        self.used_count = (self.used_count or 0) + 1
        self.raise_(
            VoucherRedeemed(
                voucher_id=str(self.id),
                code=self.code,
                used_count=self.used_count,
                order_reference=order_reference,
            )
        )

    def disable(self):
        if not self.active:
            return
        self.active = False
        self.raise_(VoucherDisabled(voucher_id=str(self.id), code=self.code))

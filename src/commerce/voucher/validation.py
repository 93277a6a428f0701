"""Voucher validation: a pure verdict over a voucher's current state.

Checks run in a fixed order and the first failure wins:

1. CODE_NOT_FOUND
2. VOUCHER_DISABLED
3. VOUCHER_PENDING (start date still ahead)
4. VOUCHER_EXPIRED (expiry date passed)
5. USE_LIMIT_REACHED (global cap hit; a zero or unset cap is unlimited)

Hitting the cap is a verdict, not an error. Cart-level rules (minimum
spend, allowlist, per-cart cap) live in `commerce.voucher.application`.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

import structlog
from protean.utils.globals import current_domain

from commerce.utils.clock import as_utc, utcnow
from commerce.voucher.voucher import Voucher

logger = structlog.get_logger(__name__)


class ReasonCode(Enum):
    CODE_NOT_FOUND = "CODE_NOT_FOUND"
    VOUCHER_DISABLED = "VOUCHER_DISABLED"
    VOUCHER_PENDING = "VOUCHER_PENDING"
    VOUCHER_EXPIRED = "VOUCHER_EXPIRED"
    USE_LIMIT_REACHED = "USE_LIMIT_REACHED"
    MIN_SPEND_NOT_MET = "MIN_SPEND_NOT_MET"
    NO_ELIGIBLE_ITEMS = "NO_ELIGIBLE_ITEMS"


@dataclass(frozen=True)
class DiscountDescriptor:
    """What a valid voucher grants, independent of any cart."""

    code: str
    voucher_type: str
    value: float
    free_shipping: bool = False
    product_ids: tuple[str, ...] = field(default_factory=tuple)
    min_spend: float | None = None
    max_usage_per_cart: int | None = None

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "voucher_type": self.voucher_type,
            "value": self.value,
            "free_shipping": self.free_shipping,
            "product_ids": list(self.product_ids),
            "min_spend": self.min_spend,
            "max_usage_per_cart": self.max_usage_per_cart,
        }


@dataclass(frozen=True)
class VoucherVerdict:
    valid: bool
    reason_code: ReasonCode | None = None
    discount: DiscountDescriptor | None = None

    @classmethod
    def rejected(cls, reason_code: ReasonCode) -> "VoucherVerdict":
        return cls(valid=False, reason_code=reason_code)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "reason_code": self.reason_code.value if self.reason_code else None,
            "discount": self.discount.to_dict() if self.discount else None,
        }


def describe(voucher: Voucher) -> DiscountDescriptor:
    return DiscountDescriptor(
        code=voucher.code,
        voucher_type=voucher.voucher_type,
        value=voucher.value,
        free_shipping=bool(voucher.is_free_shipping),
        product_ids=tuple(voucher.product_ids or ()),
        min_spend=voucher.min_spend,
        max_usage_per_cart=voucher.max_usage_per_cart,
    )


def validate(voucher: Voucher | None, as_of: datetime | None = None) -> VoucherVerdict:
    now = as_utc(as_of) if as_of else utcnow()

    if voucher is None:
        return VoucherVerdict.rejected(ReasonCode.CODE_NOT_FOUND)
    if not voucher.active:
        return VoucherVerdict.rejected(ReasonCode.VOUCHER_DISABLED)
    if voucher.start_date and now < as_utc(voucher.start_date):
        return VoucherVerdict.rejected(ReasonCode.VOUCHER_PENDING)
    if voucher.expiry_date and now > as_utc(voucher.expiry_date):
        return VoucherVerdict.rejected(ReasonCode.VOUCHER_EXPIRED)
    if voucher.uses_exhausted:
        return VoucherVerdict.rejected(ReasonCode.USE_LIMIT_REACHED)

    return VoucherVerdict(valid=True, discount=describe(voucher))


class VoucherService:
    """Looks codes up in the store and validates them."""

    def lookup(self, code: str) -> Voucher | None:
        return current_domain.repository_for(Voucher).find_by_code(code)

    def validate(self, code: str, as_of: datetime | None = None) -> VoucherVerdict:
        verdict = validate(self.lookup(code), as_of)
        logger.info(
            "Voucher checked",
            code=(code or "").strip().upper(),
            valid=verdict.valid,
            reason_code=verdict.reason_code.value if verdict.reason_code else None,
        )
        return verdict

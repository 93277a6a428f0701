"""Voucher management: issuing and disabling codes."""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.voucher.voucher import Voucher

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Voucher")
class IssueVoucher:
    code = String(required=True, max_length=50)
    voucher_type = String(required=True, max_length=20)
    value = Float(default=0.0, min_value=0.0)
    min_spend = Float(min_value=0.0)
    product_ids = Text()  # JSON list of product refs
    max_usage_per_cart = Integer(min_value=1)
    max_global_uses = Integer(min_value=0)
    start_date = DateTime()
    expiry_date = DateTime()
    is_free_shipping = Boolean(default=False)


@commerce.command(part_of="Voucher")
class DisableVoucher:
    code = String(required=True, max_length=50)


@commerce.command_handler(part_of=Voucher)
class VoucherManagementHandler:
    @handle(IssueVoucher)
    def issue_voucher(self, command):
        voucher = Voucher.issue(
            code=command.code,
            voucher_type=command.voucher_type,
            value=command.value or 0.0,
            min_spend=command.min_spend,
            product_ids=json.loads(command.product_ids) if command.product_ids else None,
            max_usage_per_cart=command.max_usage_per_cart,
            max_global_uses=command.max_global_uses,
            start_date=command.start_date,
            expiry_date=command.expiry_date,
            is_free_shipping=command.is_free_shipping,
        )
        current_domain.repository_for(Voucher).add(voucher)
        logger.info("Voucher issued", code=voucher.code, voucher_type=voucher.voucher_type)
        return str(voucher.id)

    @handle(DisableVoucher)
    def disable_voucher(self, command):
        repo = current_domain.repository_for(Voucher)
        voucher = repo.find_by_code(command.code)
        if voucher is None:
            raise ObjectNotFoundError(f"Voucher `{command.code}` does not exist")
        voucher.disable()
        repo.add(voucher)
        logger.info("Voucher disabled", code=voucher.code)

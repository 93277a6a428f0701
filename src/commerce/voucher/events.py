"""Domain events for the Voucher aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Voucher")
class VoucherIssued:
    __version__ = 1

    voucher_id = Identifier(required=True)
    code = String(required=True, max_length=50)
    voucher_type = String(required=True, max_length=20)
    issued_at = DateTime(required=True)


@commerce.event(part_of="Voucher")
class VoucherRedeemed:
    """A paid order used the voucher and it reduced the price."""

    __version__ = 1

    voucher_id = Identifier(required=True)
    code = String(required=True, max_length=50)
    used_count = Integer(required=True)
    order_reference = String(max_length=255)


@commerce.event(part_of="Voucher")
class VoucherDisabled:
    __version__ = 1

    voucher_id = Identifier(required=True)
    code = String(required=True, max_length=50)

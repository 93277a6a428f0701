"""Repository for the Voucher aggregate."""

from commerce.domain import commerce
from commerce.voucher.voucher import Voucher, normalize_code


@commerce.repository(part_of=Voucher)
class VoucherRepository:
    def find_by_code(self, code: str) -> Voucher | None:
        """Codes are stored upper-case, so lookups are case-insensitive."""
        code = normalize_code(code)
        if not code:
            return None
        return self._dao.query.filter(code=code).all().first

"""Shared BDD step definitions for the commerce domain."""

from datetime import timedelta

from commerce.utils.clock import utcnow
from commerce.voucher.management import DisableVoucher
from commerce.voucher.voucher import Voucher
from protean import current_domain
from pytest_bdd import given, parsers, then


# ---------------------------------------------------------------------------
# Given steps: vouchers
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a {percent:d}% voucher "{code}"'))
def percent_voucher(voucher, percent, code):
    voucher(code, "PERCENT", float(percent))


@given(parsers.cfparse('a {percent:d}% voucher "{code}" starting tomorrow'))
def future_voucher(voucher, percent, code):
    voucher(code, "PERCENT", float(percent), start_date=utcnow() + timedelta(days=1))


@given(parsers.cfparse('a {percent:d}% voucher "{code}" that expired yesterday'))
def expired_voucher(voucher, percent, code):
    voucher(code, "PERCENT", float(percent), expiry_date=utcnow() - timedelta(days=1))


@given(parsers.cfparse('a {percent:d}% voucher "{code}" limited to {uses:d} use'))
@given(parsers.cfparse('a {percent:d}% voucher "{code}" limited to {uses:d} uses'))
def capped_voucher(voucher, percent, code, uses):
    voucher(code, "PERCENT", float(percent), max_global_uses=uses)


@given(parsers.cfparse('the voucher "{code}" is disabled'))
def disabled_voucher(code):
    current_domain.process(DisableVoucher(code=code), asynchronous=False)


@given(parsers.cfparse('the voucher "{code}" has been redeemed'))
def redeemed_voucher(code):
    repo = current_domain.repository_for(Voucher)
    record = repo.find_by_code(code)
    record.redeem(order_reference="cs_earlier")
    repo.add(record)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the voucher "{code}" has been used {count:d} time'))
@then(parsers.cfparse('the voucher "{code}" has been used {count:d} times'))
def voucher_used(code, count):
    assert current_domain.repository_for(Voucher).find_by_code(code).used_count == count


@then(parsers.cfparse('{count:d} email was sent to "{address}"'))
@then(parsers.cfparse('{count:d} emails were sent to "{address}"'))
def emails_sent(email, count, address):
    assert len(email.sent_to(address)) == count

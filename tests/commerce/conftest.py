import itertools

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def commerce_bed():
    from commerce.domain import commerce

    bed = DomainFixture(commerce)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(commerce_bed):
    with commerce_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
@pytest.fixture()
def email():
    from commerce.notification.fake_email import FakeEmailAdapter

    return FakeEmailAdapter()


@pytest.fixture()
def gateway():
    from commerce.payment.fake_adapter import FakeGateway

    return FakeGateway(webhook_secret="whsec_test")


@pytest.fixture()
def notifier(email):
    from commerce.notification.notifier import Notifier

    return Notifier(email)


@pytest.fixture()
def services(gateway, email):
    from commerce.wiring import build_services
    from protean import current_domain

    return build_services(current_domain, gateway=gateway, email=email)


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------
@pytest.fixture()
def stock():
    """Receive a batch for a product, registering the product on first use.

    stock("p45b", 50, price=4.5) -> batch id
    """
    from commerce.inventory.product import Product
    from commerce.inventory.receiving import ReceiveBatch, RegisterProduct
    from protean import current_domain

    counter = itertools.count(1)

    def _stock(slug, quantity, price=10.0, status="LIVE", name=None, category="POWER"):
        if current_domain.repository_for(Product).find_by_slug(slug) is None:
            current_domain.process(
                RegisterProduct(slug=slug, name=name or slug.upper(), price=price, category=category),
                asynchronous=False,
            )
        return current_domain.process(
            ReceiveBatch(
                product_slug=slug,
                code=f"{slug.upper()}-B{next(counter):03d}",
                stock_quantity=quantity,
                status=status,
            ),
            asynchronous=False,
        )

    return _stock


@pytest.fixture()
def voucher():
    """Issue a voucher: voucher("SAVE10", "PERCENT", 10) -> voucher id."""
    import json

    from commerce.voucher.management import IssueVoucher
    from protean import current_domain

    def _voucher(code, voucher_type="PERCENT", value=10.0, product_ids=None, **kwargs):
        return current_domain.process(
            IssueVoucher(
                code=code,
                voucher_type=voucher_type,
                value=value,
                product_ids=json.dumps(product_ids or []),
                **kwargs,
            ),
            asynchronous=False,
        )

    return _voucher

"""Collaborator wiring: builds the adapters and orchestrators from domain config.

Real adapters are used only when their credentials are configured:
Stripe when STRIPE_API_KEY is set, the HTTP email API when EMAIL_API_KEY is
set. Otherwise the fakes stand in, which is what dev and test run on.
"""

from dataclasses import dataclass
from datetime import timedelta

import structlog
from protean import Domain

from commerce.checkout.lifecycle import CheckoutLifecycleManager
from commerce.inventory.live import LiveInventory
from commerce.notification.fake_email import FakeEmailAdapter
from commerce.notification.http_email import HttpEmailAdapter
from commerce.notification.notifier import Notifier
from commerce.notification.port import EmailPort
from commerce.order.completion import OrderCompletionPipeline
from commerce.payment.fake_adapter import FakeGateway
from commerce.payment.port import PaymentGateway
from commerce.payment.stripe_adapter import StripeGateway
from commerce.voucher.validation import VoucherService

logger = structlog.get_logger(__name__)


@dataclass
class Services:
    gateway: PaymentGateway
    email: EmailPort
    notifier: Notifier
    inventory: LiveInventory
    lifecycle: CheckoutLifecycleManager
    pipeline: OrderCompletionPipeline
    vouchers: VoucherService
    sweep_secret: str | None = None
    idle_threshold: timedelta = timedelta(hours=1)


def _setting(domain: Domain, name: str, default=None):
    value = getattr(domain, name, default)
    return default if value in (None, "") else value


def build_gateway(domain: Domain) -> PaymentGateway:
    api_key = _setting(domain, "STRIPE_API_KEY")
    webhook_secret = _setting(domain, "PAYMENT_WEBHOOK_SECRET", "whsec_local")
    if api_key:
        logger.info("Using Stripe payment gateway")
        return StripeGateway(
            api_key=api_key,
            webhook_secret=webhook_secret,
            timeout=float(_setting(domain, "GATEWAY_TIMEOUT_SECONDS", 10)),
        )
    logger.info("No payment API key configured, using fake gateway")
    return FakeGateway(webhook_secret=webhook_secret)


def build_email(domain: Domain) -> EmailPort:
    api_key = _setting(domain, "EMAIL_API_KEY")
    if api_key:
        logger.info("Using HTTP email adapter")
        return HttpEmailAdapter(
            api_key=api_key,
            sender=_setting(domain, "EMAIL_SENDER", "Voltline Supply <orders@voltline.test>"),
            timeout=float(_setting(domain, "NOTIFICATION_TIMEOUT_SECONDS", 5)),
        )
    logger.info("No email API key configured, using fake email adapter")
    return FakeEmailAdapter()


def build_services(
    domain: Domain,
    gateway: PaymentGateway | None = None,
    email: EmailPort | None = None,
) -> Services:
    """Assemble every collaborator once. Explicit adapters override config."""
    gateway = gateway or build_gateway(domain)
    email = email or build_email(domain)
    notifier = Notifier(email)
    inventory = LiveInventory(low_stock_threshold=int(_setting(domain, "LOW_STOCK_THRESHOLD", 20)))

    return Services(
        gateway=gateway,
        email=email,
        notifier=notifier,
        inventory=inventory,
        lifecycle=CheckoutLifecycleManager(
            notifier=notifier,
            recovery_url_base=_setting(domain, "RECOVERY_URL_BASE", "http://localhost:3000"),
        ),
        pipeline=OrderCompletionPipeline(
            gateway=gateway,
            notifier=notifier,
            inventory=inventory,
            window=timedelta(hours=int(_setting(domain, "CHECKOUT_WINDOW_HOURS", 24))),
        ),
        vouchers=VoucherService(),
        sweep_secret=_setting(domain, "SWEEP_SECRET"),
        idle_threshold=timedelta(minutes=int(_setting(domain, "ABANDONED_IDLE_MINUTES", 60))),
    )

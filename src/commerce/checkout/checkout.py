"""Checkout aggregate: a customer's in-progress cart, keyed by email.

There is no account system: the lower-cased email is the only stable identity.
The storefront re-submits the whole cart on every change, so the aggregate
holds a snapshot (items, shipping, voucher code) rather than an edit log.

Lifecycle:
    Open → Abandoned   (idle sweep, or superseded once its 24h window lapsed)
    Open → Completed   (order finalized)
    Abandoned → Completed   (a late payment still wins over the sweep)

`open_claim` carries the email only while the cart is Open. It is a unique
column, so the store itself refuses a second Open cart for the same email.
"""

from datetime import datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from commerce.checkout.events import (
    CheckoutAbandoned,
    CheckoutCompleted,
    CheckoutRefreshed,
    CheckoutStarted,
)
from commerce.checkout.shipping import ShippingSnapshot
from commerce.domain import commerce
from commerce.utils.clock import as_utc, utcnow


class CheckoutStatus(Enum):
    OPEN = "Open"
    ABANDONED = "Abandoned"
    COMPLETED = "Completed"


class AbandonReason(Enum):
    IDLE = "Idle"
    SUPERSEDED = "Superseded"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


@commerce.entity(part_of="Checkout")
class CheckoutItem:
    product_ref = String(required=True, max_length=100)
    name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    position = Integer(default=0)


def _build_items(items_data) -> list[CheckoutItem]:
    return [
        CheckoutItem(
            product_ref=item["product_ref"],
            name=item.get("name"),
            quantity=item["quantity"],
            unit_price=item["unit_price"],
            position=index,
        )
        for index, item in enumerate(items_data)
    ]


@commerce.aggregate
class Checkout:
    email = String(required=True, max_length=254)
    open_claim = String(max_length=254, unique=True)
    items = HasMany(CheckoutItem)
    shipping = ValueObject(ShippingSnapshot)
    session_id = String(max_length=255)
    voucher_code = String(max_length=50)
    status = String(choices=CheckoutStatus, default=CheckoutStatus.OPEN.value)
    last_active = DateTime()
    created_at = DateTime()
    abandoned_at = DateTime()
    abandon_reason = String(max_length=20)
    recovery_notified = Boolean(default=False)
    completed_at = DateTime()
    order_id = Identifier()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def start(cls, email, items, shipping=None, session_id=None, voucher_code=None, now=None):
        now = now or utcnow()
        email = normalize_email(email)
        if not email:
            raise ValidationError({"email": ["Email is required"]})
        if not items:
            raise ValidationError({"items": ["A checkout needs at least one item"]})

        checkout = cls(
            email=email,
            open_claim=email,
            shipping=ShippingSnapshot(**shipping) if shipping else None,
            session_id=session_id,
            voucher_code=voucher_code.strip().upper() if voucher_code else None,
            status=CheckoutStatus.OPEN.value,
            last_active=now,
            created_at=now,
        )
        checkout.add_items(_build_items(items))

        checkout.raise_(
            CheckoutStarted(
                checkout_id=str(checkout.id),
                email=email,
                item_count=len(items),
                started_at=now,
            )
        )
        return checkout

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_open(self) -> bool:
        return self.status == CheckoutStatus.OPEN.value

    @property
    def line_items(self) -> list[CheckoutItem]:
        return sorted(self.items, key=lambda item: item.position or 0)

    def is_within_window(self, now: datetime, window: timedelta) -> bool:
        return as_utc(self.created_at) > now - window

    def is_idle_since(self, cutoff: datetime) -> bool:
        return as_utc(self.last_active) < cutoff

    # -------------------------------------------------------------------
    # Snapshot refresh
    # -------------------------------------------------------------------
    def refresh(self, items, shipping=None, session_id=None, voucher_code=None, now=None):
        """Overwrite the snapshot with the latest submission."""
        if not self.is_open:
            raise ValidationError({"status": [f"Cannot update a checkout in {self.status} state"]})
        if not items:
            raise ValidationError({"items": ["A checkout needs at least one item"]})

        now = now or utcnow()

        if self.items:
            self.remove_items(list(self.items))
        self.add_items(_build_items(items))

        self.shipping = ShippingSnapshot(**shipping) if shipping else None
        self.session_id = session_id
        self.voucher_code = voucher_code.strip().upper() if voucher_code else None
        self.last_active = now

        self.raise_(
            CheckoutRefreshed(
                checkout_id=str(self.id),
                item_count=len(items),
                refreshed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def abandon(self, reason=AbandonReason.IDLE, now=None):
        if not self.is_open:
            raise ValidationError({"status": ["Only open checkouts can be abandoned"]})

        now = now or utcnow()
        self.status = CheckoutStatus.ABANDONED.value
        self.open_claim = None
        self.abandoned_at = now
        self.abandon_reason = reason.value

        self.raise_(
            CheckoutAbandoned(
                checkout_id=str(self.id),
                email=self.email,
                reason=reason.value,
                abandoned_at=now,
            )
        )

    def mark_recovery_notified(self):
        self.recovery_notified = True

    def complete(self, order_id, now=None):
        """Close the cart against a finalized order.

        Completing twice for the same order is a no-op; a second, different
        order is refused.
        """
        if self.status == CheckoutStatus.COMPLETED.value:
            if str(self.order_id) == str(order_id):
                return
            raise ValidationError({"status": ["Checkout is already completed by another order"]})

        now = now or utcnow()
        self.status = CheckoutStatus.COMPLETED.value
        self.open_claim = None
        self.completed_at = now
        self.order_id = order_id

        self.raise_(
            CheckoutCompleted(
                checkout_id=str(self.id),
                order_id=str(order_id),
                completed_at=now,
            )
        )

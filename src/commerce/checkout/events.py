"""Domain events for the Checkout aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Checkout")
class CheckoutStarted:
    """A first cart snapshot was recorded for an email."""

    __version__ = 1

    checkout_id = Identifier(required=True)
    email = String(required=True, max_length=254)
    item_count = Integer(default=0)
    started_at = DateTime(required=True)


@commerce.event(part_of="Checkout")
class CheckoutRefreshed:
    """An open cart was overwritten with a newer snapshot."""

    __version__ = 1

    checkout_id = Identifier(required=True)
    item_count = Integer(default=0)
    refreshed_at = DateTime(required=True)


@commerce.event(part_of="Checkout")
class CheckoutAbandoned:
    """An open cart went idle, or was superseded once its window lapsed."""

    __version__ = 1

    checkout_id = Identifier(required=True)
    email = String(required=True, max_length=254)
    reason = String(max_length=50)
    abandoned_at = DateTime(required=True)


@commerce.event(part_of="Checkout")
class CheckoutCompleted:
    """A paid order was finalized from this cart."""

    __version__ = 1

    checkout_id = Identifier(required=True)
    order_id = Identifier(required=True)
    completed_at = DateTime(required=True)

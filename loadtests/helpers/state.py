"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance keeps its own state; nothing is shared across
users.
"""

from dataclasses import dataclass, field


@dataclass
class ShopperState:
    """A storefront visitor building up a cart."""

    email: str | None = None
    checkout_id: str | None = None
    session_id: str | None = None
    items: list[dict] = field(default_factory=list)
    voucher_code: str | None = None
    submissions: int = 0


@dataclass
class ConfirmationState:
    """A customer back from the payment page, polling for their order."""

    session_id: str | None = None
    polls: int = 0
    order_id: str | None = None

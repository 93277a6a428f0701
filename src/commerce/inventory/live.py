"""Live inventory: availability and volume tiers read straight from the store.

A product's stock is the sum of `stock_quantity` over its LIVE batches only.
Nothing is cached: every call reflects committed state, so a batch drawn by
an order a moment ago is already visible to the next storefront read.
"""

from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum

import structlog
from protean.utils.globals import current_domain

from commerce.inventory.batch import Batch
from commerce.inventory.product import Product, ProductCategory
from commerce.inventory.volume_discount import VolumeDiscount

logger = structlog.get_logger(__name__)

DEFAULT_LOW_STOCK_THRESHOLD = 20


class StockTier(Enum):
    IN_STOCK = "IN_STOCK"
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    COMING_SOON = "COMING_SOON"


@dataclass(frozen=True)
class Availability:
    price: float
    stock: int
    tier: StockTier

    def to_dict(self) -> dict:
        return {"price": self.price, "stock": self.stock, "tier": self.tier.value}


@dataclass(frozen=True)
class VolumeTier:
    min_quantity: int
    discount_percent: float

    def to_dict(self) -> dict:
        return {"min_quantity": self.min_quantity, "discount_percent": self.discount_percent}


@dataclass(frozen=True)
class Shortfall:
    product_ref: str
    requested: int
    available: int


def classify_tier(stock: int, category: str, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> StockTier:
    """Prototypes are always COMING_SOON, whatever their batches hold."""
    if category == ProductCategory.PROTOTYPE.value:
        return StockTier.COMING_SOON
    if stock <= 0:
        return StockTier.OUT_OF_STOCK
    if stock <= threshold:
        return StockTier.LOW_STOCK
    return StockTier.IN_STOCK


def requested_quantities(lines) -> "OrderedDict[str, int]":
    """Total quantity per product ref, in first-seen order.

    Lines may be dicts or objects carrying `product_ref` and `quantity`.
    """
    totals: OrderedDict[str, int] = OrderedDict()
    for line in lines:
        if isinstance(line, dict):
            ref, quantity = line["product_ref"], line["quantity"]
        else:
            ref, quantity = line.product_ref, line.quantity
        ref = ref.strip().lower()
        totals[ref] = totals.get(ref, 0) + int(quantity)
    return totals


class LiveInventory:
    def __init__(self, low_stock_threshold: int | None = None) -> None:
        self._threshold = low_stock_threshold

    @property
    def threshold(self) -> int:
        if self._threshold is not None:
            return self._threshold
        return getattr(current_domain, "LOW_STOCK_THRESHOLD", DEFAULT_LOW_STOCK_THRESHOLD)

    def get_availability(self, product_refs: list[str] | None = None) -> dict[str, Availability]:
        """Availability keyed by slug. Unknown slugs are simply absent."""
        slugs = None
        if product_refs is not None:
            slugs = [ref.strip().lower() for ref in product_refs if ref and ref.strip()]
            if not slugs:
                return {}

        products = current_domain.repository_for(Product).catalog(slugs)
        stock = self._live_stock([str(product.id) for product in products])
        threshold = self.threshold

        availability = {}
        for product in products:
            units = stock.get(str(product.id), 0)
            availability[product.slug] = Availability(
                price=product.price,
                stock=units,
                tier=classify_tier(units, product.category, threshold),
            )
        return availability

    def get_volume_tiers(self) -> list[VolumeTier]:
        """Active volume discount rules, ascending by minimum quantity."""
        rules = current_domain.repository_for(VolumeDiscount).active_tiers()
        tiers = [VolumeTier(min_quantity=rule.min_quantity, discount_percent=rule.discount_percent) for rule in rules]
        return sorted(tiers, key=lambda tier: tier.min_quantity)

    def shortfalls(self, lines) -> list[Shortfall]:
        """Lines whose requested quantity exceeds live stock."""
        requested = requested_quantities(lines)
        availability = self.get_availability(list(requested))

        missing = []
        for ref, quantity in requested.items():
            available = availability[ref].stock if ref in availability else 0
            if quantity > available:
                missing.append(Shortfall(product_ref=ref, requested=quantity, available=available))

        if missing:
            logger.info(
                "Stock shortfall detected",
                shortfalls=[(item.product_ref, item.requested, item.available) for item in missing],
            )
        return missing

    def _live_stock(self, product_ids: list[str]) -> dict[str, int]:
        if not product_ids:
            return {}
        totals: dict[str, int] = {}
        for batch in current_domain.repository_for(Batch).live_for(product_ids):
            key = str(batch.product_id)
            totals[key] = totals.get(key, 0) + (batch.stock_quantity or 0)
        return totals

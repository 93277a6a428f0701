"""Repositories for inventory aggregates."""

from commerce.domain import commerce
from commerce.inventory.batch import Batch, BatchStatus
from commerce.inventory.product import Product
from commerce.inventory.volume_discount import VolumeDiscount


@commerce.repository(part_of=Product)
class ProductRepository:
    def find_by_slug(self, slug: str) -> Product | None:
        return self._dao.query.filter(slug=slug).all().first

    def catalog(self, slugs: list[str] | None = None) -> list[Product]:
        query = self._dao.query
        if slugs is not None:
            query = query.filter(slug__in=list(slugs))
        return query.order_by("slug").limit(None).all().items


@commerce.repository(part_of=Batch)
class BatchRepository:
    def live_for(self, product_ids: list[str]) -> list[Batch]:
        return (
            self._dao.query.filter(status=BatchStatus.LIVE.value, product_id__in=list(product_ids))
            .limit(None)
            .all()
            .items
        )

    def drawable_for(self, product_id: str) -> list[Batch]:
        """LIVE batches with stock left, oldest first."""
        return (
            self._dao.query.filter(
                status=BatchStatus.LIVE.value,
                product_id=product_id,
                stock_quantity__gt=0,
            )
            .order_by("created_at")
            .limit(None)
            .all()
            .items
        )


@commerce.repository(part_of=VolumeDiscount)
class VolumeDiscountRepository:
    def find_by_min_quantity(self, min_quantity: int) -> VolumeDiscount | None:
        return self._dao.query.filter(min_quantity=min_quantity).all().first

    def active_tiers(self) -> list[VolumeDiscount]:
        return self._dao.query.filter(active=True).order_by("min_quantity").limit(None).all().items

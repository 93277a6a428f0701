"""Batch aggregate: one inbound lot of a product with its own stock count.

Only LIVE batches are sellable. A product's stock is the sum over its LIVE
batches; PENDING, DRAFT, DEPLETED and ARCHIVED lots never count.

Status transitions:
    DRAFT → PENDING → LIVE → DEPLETED → ARCHIVED
    LIVE ↔ PENDING (pulled back for inspection)
    DEPLETED → LIVE (restocked)
    any non-archived → ARCHIVED

Stock is drawn under the aggregate's optimistic version, so two orders
drawing the same batch concurrently cannot both spend the same units.
"""

from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String

from commerce.domain import commerce
from commerce.inventory.events import BatchReceived, BatchStatusChanged, StockDrawn
from commerce.utils.clock import utcnow


class BatchStatus(Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    LIVE = "LIVE"
    DEPLETED = "DEPLETED"
    ARCHIVED = "ARCHIVED"


_VALID_TRANSITIONS = {
    BatchStatus.DRAFT: {BatchStatus.PENDING, BatchStatus.LIVE, BatchStatus.ARCHIVED},
    BatchStatus.PENDING: {BatchStatus.LIVE, BatchStatus.ARCHIVED},
    BatchStatus.LIVE: {BatchStatus.PENDING, BatchStatus.DEPLETED, BatchStatus.ARCHIVED},
    BatchStatus.DEPLETED: {BatchStatus.LIVE, BatchStatus.ARCHIVED},
    BatchStatus.ARCHIVED: set(),
}


@commerce.aggregate
class Batch:
    product_id = Identifier(required=True)
    code = String(required=True, max_length=50, unique=True)
    status = String(choices=BatchStatus, default=BatchStatus.PENDING.value)
    stock_quantity = Integer(default=0, min_value=0)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def receive(cls, product_id, code, stock_quantity, status=BatchStatus.PENDING.value, received_at=None):
        now = received_at or utcnow()
        batch = cls(
            product_id=product_id,
            code=code,
            status=status,
            stock_quantity=stock_quantity,
            created_at=now,
            updated_at=now,
        )
        batch.raise_(
            BatchReceived(
                batch_id=str(batch.id),
                product_id=str(product_id),
                code=code,
                status=status,
                stock_quantity=stock_quantity,
                received_at=now,
            )
        )
        return batch

    @property
    def is_live(self) -> bool:
        return self.status == BatchStatus.LIVE.value

    def change_status(self, new_status: BatchStatus):
        current = BatchStatus(self.status)
        if new_status == current:
            return
        if new_status not in _VALID_TRANSITIONS[current]:
            raise ValidationError({"status": [f"Cannot move batch from {current.value} to {new_status.value}"]})
        if new_status == BatchStatus.LIVE and not self.stock_quantity:
            raise ValidationError({"status": ["A batch with no stock cannot go live"]})

        self.status = new_status.value
        self.updated_at = utcnow()
        self.raise_(
            BatchStatusChanged(
                batch_id=str(self.id),
                previous_status=current.value,
                new_status=new_status.value,
            )
        )

    def restock(self, quantity: int):
        if quantity <= 0:
            raise ValidationError({"quantity": ["Restock quantity must be positive"]})
        if self.status == BatchStatus.ARCHIVED.value:
            raise ValidationError({"status": ["Archived batches cannot be restocked"]})

        self.stock_quantity += quantity
        self.updated_at = utcnow()
        if self.status == BatchStatus.DEPLETED.value:
            self.change_status(BatchStatus.LIVE)

    def draw(self, quantity: int, order_reference: str | None = None) -> int:
        """Take up to `quantity` units; returns how many were actually taken."""
        if not self.is_live:
            raise ValidationError({"status": ["Stock can only be drawn from a live batch"]})
        if quantity <= 0:
            raise ValidationError({"quantity": ["Draw quantity must be positive"]})

        taken = min(quantity, self.stock_quantity)
        if taken == 0:
            return 0

        self.stock_quantity -= taken
        self.updated_at = utcnow()
        self.raise_(
            StockDrawn(
                batch_id=str(self.id),
                product_id=str(self.product_id),
                quantity=taken,
                remaining=self.stock_quantity,
                order_reference=order_reference,
            )
        )
        if self.stock_quantity == 0:
            self.change_status(BatchStatus.DEPLETED)
        return taken

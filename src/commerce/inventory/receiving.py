"""Stock intake: commands and handlers for products, batches and volume tiers."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.inventory.batch import Batch, BatchStatus
from commerce.inventory.product import Product
from commerce.inventory.volume_discount import VolumeDiscount

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Product")
class RegisterProduct:
    slug = String(required=True, max_length=100)
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    category = String(max_length=20, default="POWER")


@commerce.command(part_of="Batch")
class ReceiveBatch:
    """Record an inbound lot for a product, identified by slug."""

    product_slug = String(required=True, max_length=100)
    code = String(required=True, max_length=50)
    stock_quantity = Integer(required=True, min_value=0)
    status = String(max_length=20, default=BatchStatus.PENDING.value)


@commerce.command(part_of="Batch")
class ChangeBatchStatus:
    batch_id = Identifier(required=True)
    status = String(required=True, max_length=20)


@commerce.command(part_of="Batch")
class RestockBatch:
    batch_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@commerce.command(part_of="VolumeDiscount")
class DefineVolumeTier:
    min_quantity = Integer(required=True, min_value=1)
    discount_percent = Float(required=True, min_value=0.0, max_value=100.0)


@commerce.command(part_of="VolumeDiscount")
class DeactivateVolumeTier:
    min_quantity = Integer(required=True, min_value=1)


@commerce.command_handler(part_of=Product)
class ProductHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        product = Product.register(
            slug=command.slug,
            name=command.name,
            price=command.price,
            category=command.category,
        )
        current_domain.repository_for(Product).add(product)
        logger.info("Product registered", product_id=str(product.id), slug=product.slug)
        return str(product.id)


@commerce.command_handler(part_of=Batch)
class BatchHandler:
    @handle(ReceiveBatch)
    def receive_batch(self, command):
        product = current_domain.repository_for(Product).find_by_slug(command.product_slug.strip().lower())
        if product is None:
            raise ObjectNotFoundError(f"Product `{command.product_slug}` does not exist")

        batch = Batch.receive(
            product_id=product.id,
            code=command.code,
            stock_quantity=command.stock_quantity,
            status=BatchStatus(command.status).value,
        )
        current_domain.repository_for(Batch).add(batch)
        logger.info(
            "Batch received",
            batch_id=str(batch.id),
            product_slug=product.slug,
            stock_quantity=batch.stock_quantity,
            status=batch.status,
        )
        return str(batch.id)

    @handle(ChangeBatchStatus)
    def change_batch_status(self, command):
        repo = current_domain.repository_for(Batch)
        batch = repo.get(command.batch_id)
        batch.change_status(BatchStatus(command.status))
        repo.add(batch)

    @handle(RestockBatch)
    def restock_batch(self, command):
        repo = current_domain.repository_for(Batch)
        batch = repo.get(command.batch_id)
        batch.restock(command.quantity)
        repo.add(batch)


@commerce.command_handler(part_of=VolumeDiscount)
class VolumeDiscountHandler:
    @handle(DefineVolumeTier)
    def define_volume_tier(self, command):
        repo = current_domain.repository_for(VolumeDiscount)
        tier = repo.find_by_min_quantity(command.min_quantity)
        if tier is None:
            tier = VolumeDiscount.define(command.min_quantity, command.discount_percent)
        else:
            tier.redefine(command.discount_percent)
        repo.add(tier)
        return str(tier.id)

    @handle(DeactivateVolumeTier)
    def deactivate_volume_tier(self, command):
        repo = current_domain.repository_for(VolumeDiscount)
        tier = repo.find_by_min_quantity(command.min_quantity)
        if tier is None:
            raise ObjectNotFoundError(f"No volume tier starts at {command.min_quantity} units")
        tier.deactivate()
        repo.add(tier)

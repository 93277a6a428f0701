"""Domain events for products and batches."""

from protean.fields import DateTime, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Batch")
class BatchReceived:
    """A new inbound lot was recorded for a product."""

    __version__ = 1

    batch_id = Identifier(required=True)
    product_id = Identifier(required=True)
    code = String(required=True, max_length=50)
    status = String(required=True, max_length=20)
    stock_quantity = Integer(required=True)
    received_at = DateTime(required=True)


@commerce.event(part_of="Batch")
class BatchStatusChanged:
    __version__ = 1

    batch_id = Identifier(required=True)
    previous_status = String(required=True, max_length=20)
    new_status = String(required=True, max_length=20)


@commerce.event(part_of="Batch")
class StockDrawn:
    """Units were taken from a live batch to fulfil an order."""

    __version__ = 1

    batch_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    remaining = Integer(required=True)
    order_reference = String(max_length=255)

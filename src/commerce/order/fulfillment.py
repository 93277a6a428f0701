"""Order fulfillment: shipping and completing paid orders."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.order.order import Order

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class ShipOrder:
    order_id = Identifier(required=True)
    carrier = String(max_length=100)
    tracking_number = String(max_length=100)


@commerce.command(part_of="Order")
class CompleteOrder:
    """Close out a shipped order."""

    order_id = Identifier(required=True)


@commerce.command_handler(part_of=Order)
class FulfillmentHandler:
    @handle(ShipOrder)
    def ship_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.ship(carrier=command.carrier, tracking_number=command.tracking_number)
        repo.add(order)
        logger.info("Order shipped", order_id=str(order.id), carrier=command.carrier)

    @handle(CompleteOrder)
    def complete_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.complete()
        repo.add(order)
        logger.info("Order completed", order_id=str(order.id))

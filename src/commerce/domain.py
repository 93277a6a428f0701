"""Commerce bounded context: carts, orders, live inventory and vouchers.

Everything shares one store: checkout reads live inventory and voucher state
before an order is finalized, and finalization draws down the same batches
the inventory view reports.
"""

import structlog
from protean.domain import Domain

commerce = Domain(name="commerce")

logger = structlog.get_logger(__name__)

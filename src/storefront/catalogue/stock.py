"""Stock decrement — command and handler.

Each order line takes stock out of one product. The handler runs inside the
caller's per-product lock (see `storefront.order.service`), and the
aggregate itself refuses any decrement that would go below zero.
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Product")
class DecrementStock:
    product_id: Identifier(required=True)
    order_id: Identifier(required=True)
    quantity: Integer(required=True, min_value=1)


@storefront.command_handler(part_of=Product)
class DecrementStockHandler:
    @handle(DecrementStock)
    def decrement_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)

        applied = product.decrement_stock(
            quantity=command.quantity,
            order_id=command.order_id,
        )
        if not applied:
            logger.info(
                "Stock already decremented for order",
                product_id=str(command.product_id),
                order_id=str(command.order_id),
            )
            return False

        repo.add(product)
        logger.info(
            "Stock decremented",
            product_id=str(command.product_id),
            order_id=str(command.order_id),
            quantity=command.quantity,
            remaining=product.stock,
        )
        return True

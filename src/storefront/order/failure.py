"""Order failure — command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order


@storefront.command(part_of="Order")
class FailOrder:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@storefront.command_handler(part_of=Order)
class FailOrderHandler:
    @handle(FailOrder)
    def fail_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.fail(command.reason)
        repo.add(order)

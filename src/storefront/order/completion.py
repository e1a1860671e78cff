"""Order completion — command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order


@storefront.command(part_of="Order")
class CompleteOrder:
    """Mark an order paid once the payment provider has confirmed it."""

    order_id = Identifier(required=True)
    payment_reference = String(max_length=255)


@storefront.command_handler(part_of=Order)
class CompleteOrderHandler:
    @handle(CompleteOrder)
    def complete_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        completed = order.complete(payment_reference=command.payment_reference)
        if completed:
            repo.add(order)
        return completed

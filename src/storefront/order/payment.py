"""Payment session tracking — command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order


@storefront.command(part_of="Order")
class AttachCheckoutSession:
    """Record the hosted payment session opened for an order."""

    order_id = Identifier(required=True)
    payment_session_id = String(required=True, max_length=255)


@storefront.command_handler(part_of=Order)
class AttachCheckoutSessionHandler:
    @handle(AttachCheckoutSession)
    def attach_checkout_session(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.attach_checkout_session(command.payment_session_id)
        repo.add(order)

"""Order confirmation tracking — command and handler.

The flag set here is what a future notification retry would look for: a
Completed order with `confirmation_sent` still False never got its email.
"""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order


@storefront.command(part_of="Order")
class RecordConfirmationSent:
    order_id = Identifier(required=True)
    notification_id = Identifier(required=True)


@storefront.command_handler(part_of=Order)
class RecordConfirmationSentHandler:
    @handle(RecordConfirmationSent)
    def record_confirmation_sent(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if order.mark_confirmation_sent(command.notification_id):
            repo.add(order)

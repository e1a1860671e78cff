"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A new order was recorded at checkout, awaiting payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    customer_email = String()
    items = Text(required=True, sanitize=False)  # JSON: list of line item snapshots
    shipping_address = Text(required=True, sanitize=False)  # JSON: address dict
    shipping_method = String(required=True)
    subtotal = Float(required=True)
    shipping_cost = Float(required=True)
    tax_total = Float(required=True)
    total_amount = Float(required=True)
    currency = String(required=True)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class CheckoutSessionAttached:
    """A hosted payment session was opened for the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_session_id = String(required=True)


@storefront.event(part_of="Order")
class OrderCompleted:
    """The payment provider confirmed payment for the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    payment_reference = String()
    total_amount = Float(required=True)
    completed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderFailed:
    """The order can no longer be paid for."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderConfirmationSent:
    """The order confirmation reached the customer's inbox."""

    __version__ = 1

    order_id = Identifier(required=True)
    notification_id = Identifier(required=True)
    sent_at = DateTime(required=True)

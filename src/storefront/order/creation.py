"""Order placement — command and handler."""

import json

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order
from storefront.order.pricing import OrderPricing


@storefront.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    customer_email = String(max_length=255)
    items = Text(required=True, sanitize=False)  # JSON: list of line item dicts
    shipping_address = Text(required=True, sanitize=False)  # JSON: address dict
    shipping_method = String(max_length=20, default="standard")
    subtotal = Float(required=True)
    shipping_cost = Float(default=0.0)
    tax_total = Float(default=0.0)
    total_amount = Float(required=True)
    currency = String(max_length=3, default="USD")


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        shipping_address = (
            json.loads(command.shipping_address)
            if isinstance(command.shipping_address, str)
            else command.shipping_address
        )

        order = Order.create(
            customer_id=command.customer_id,
            customer_email=command.customer_email,
            items_data=items_data,
            shipping_address=shipping_address,
            shipping_method=command.shipping_method or "standard",
            pricing=OrderPricing(
                subtotal=command.subtotal,
                shipping_cost=command.shipping_cost or 0.0,
                tax_total=command.tax_total or 0.0,
                total_amount=command.total_amount,
            ),
            currency=command.currency or "USD",
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)

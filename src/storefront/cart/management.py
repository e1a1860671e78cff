"""Cart management — commands and handler.

Handles cart creation, clearing, and merging a guest cart into a customer's cart.
"""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.domain import storefront


@storefront.command(part_of="ShoppingCart")
class CreateCart:
    """Create a new shopping cart for a customer or a guest session."""

    customer_id = Identifier()  # Optional for guest carts
    session_id = String(max_length=255)


@storefront.command(part_of="ShoppingCart")
class MergeGuestCart:
    """Merge lines from a guest session cart into a customer's cart."""

    cart_id = Identifier(required=True)
    source_cart_id = Identifier()
    guest_cart_items = Text(required=True, sanitize=False)  # JSON: list of cart line snapshots
    merge_token = String(required=True, max_length=255)


@storefront.command(part_of="ShoppingCart")
class ClearCart:
    cart_id = Identifier(required=True)


@storefront.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(CreateCart)
    def create_cart(self, command):
        cart = ShoppingCart.create(
            customer_id=command.customer_id,
            session_id=command.session_id,
        )
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(MergeGuestCart)
    def merge_guest_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)

        guest_items = (
            json.loads(command.guest_cart_items)
            if isinstance(command.guest_cart_items, str)
            else command.guest_cart_items
        )

        merged = cart.merge_guest_cart(
            guest_cart_items=guest_items,
            merge_token=command.merge_token,
            source_cart_id=command.source_cart_id,
        )
        if merged:
            repo.add(cart)
        return merged

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.clear()
        repo.add(cart)

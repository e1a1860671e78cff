"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="ShoppingCart")
class CartCreated:
    """A cart was opened for a customer or a guest session."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier()
    session_id = String()


@storefront.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the shopping cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    unit_price = Float(required=True)
    quantity = Integer(required=True)
    line_quantity = Integer(required=True)  # Quantity on the line after the add


@storefront.event(part_of="ShoppingCart")
class CartQuantityUpdated:
    """The quantity of a cart line was changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="ShoppingCart")
class CartItemRemoved:
    """A line was removed from the shopping cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)


@storefront.event(part_of="ShoppingCart")
class CartCleared:
    """Every line was removed from the shopping cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    items_removed_count = Integer(required=True)


@storefront.event(part_of="ShoppingCart")
class CartsMerged:
    """A guest cart's lines were merged into a customer's cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    source_cart_id = Identifier()
    merge_token = String(required=True)
    items_merged_count = Integer(required=True)

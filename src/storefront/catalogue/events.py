"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductAdded:
    """A product was added to the catalogue."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True, sanitize=False)
    price = Float(required=True)
    stock = Integer(required=True)
    category = String()
    subcategory = String()


@storefront.event(part_of="Product")
class ProductUpdated:
    """One or more catalogue attributes of a product changed."""

    __version__ = 1

    product_id = Identifier(required=True)
    changed_fields = String(required=True)  # Comma-separated field names


@storefront.event(part_of="Product")
class StockDecremented:
    """Stock was taken out of a product for an order."""

    __version__ = 1

    product_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    decremented_at = DateTime(required=True)


@storefront.event(part_of="Product")
class ProductRestocked:
    """Stock was added back to a product."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_stock = Integer(required=True)

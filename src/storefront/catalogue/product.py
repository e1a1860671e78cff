"""Product aggregate (CQRS) — catalogue entry and the stock it can sell.

Catalogue attributes are maintained through the inventory admin endpoints.
Stock only ever goes down through `decrement_stock`, which is the
authoritative guard against overselling: it refuses any decrement that would
take stock below zero, and it records every decrement against the order that
caused it so a retried decrement for the same order is a no-op.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from storefront.catalogue.events import (
    ProductAdded,
    ProductRestocked,
    ProductUpdated,
    StockDecremented,
)
from storefront.domain import storefront

# Attributes an administrator may change after creation
EDITABLE_FIELDS = ("name", "description", "price", "stock", "image_url", "category", "subcategory")


@storefront.entity(part_of="Product")
class StockMovement:
    """Ledger entry: `quantity` units left the shelf for `order_id`."""

    order_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    recorded_at = DateTime()


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255, sanitize=False)
    description = Text()
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    image_url = String(max_length=1000)
    category = String(max_length=100)
    subcategory = String(max_length=100)
    stock_movements = HasMany(StockMovement)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def stock_cannot_be_negative(self):
        if self.stock is not None and self.stock < 0:
            raise ValidationError({"stock": ["Stock cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        name,
        price,
        stock=0,
        description=None,
        image_url=None,
        category=None,
        subcategory=None,
        product_id=None,
    ):
        now = datetime.now(UTC)
        attributes = dict(
            name=name,
            price=price,
            stock=stock,
            description=description,
            image_url=image_url,
            category=category,
            subcategory=subcategory,
            created_at=now,
            updated_at=now,
        )
        if product_id is not None:
            attributes["id"] = product_id

        product = cls(**attributes)
        product.raise_(
            ProductAdded(
                product_id=str(product.id),
                name=product.name,
                price=product.price,
                stock=product.stock,
                category=product.category,
                subcategory=product.subcategory,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Catalogue maintenance
    # -------------------------------------------------------------------
    def update_details(self, **changes):
        """Apply the provided attribute changes; `None` values are ignored."""
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError({"fields": [f"Unknown product fields: {', '.join(sorted(unknown))}"]})

        changed = [field for field in EDITABLE_FIELDS if changes.get(field) is not None]
        if not changed:
            return

        for field in changed:
            setattr(self, field, changes[field])
        self.updated_at = datetime.now(UTC)

        self.raise_(
            ProductUpdated(
                product_id=str(self.id),
                changed_fields=",".join(changed),
            )
        )

    def restock(self, quantity):
        """Put `quantity` units back on the shelf."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        self.stock = self.stock + quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            ProductRestocked(
                product_id=str(self.id),
                quantity=quantity,
                new_stock=self.stock,
            )
        )

    # -------------------------------------------------------------------
    # Stock decrement
    # -------------------------------------------------------------------
    def has_stock_movement_for(self, order_id) -> bool:
        return any(str(movement.order_id) == str(order_id) for movement in (self.stock_movements or []))

    def decrement_stock(self, quantity, order_id) -> bool:
        """Take `quantity` units out of stock for `order_id`.

        Returns False when this order's decrement was already applied.
        """
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        if self.has_stock_movement_for(order_id):
            return False

        previous_stock = self.stock or 0
        if previous_stock < quantity:
            raise ValidationError(
                {"stock": [f"Not enough stock for {self.name} ({self.id}). Only {previous_stock} left."]}
            )

        now = datetime.now(UTC)
        self.stock = previous_stock - quantity
        self.add_stock_movements(
            StockMovement(
                order_id=str(order_id),
                quantity=quantity,
                recorded_at=now,
            )
        )
        self.updated_at = now

        self.raise_(
            StockDecremented(
                product_id=str(self.id),
                order_id=str(order_id),
                quantity=quantity,
                previous_stock=previous_stock,
                new_stock=self.stock,
                decremented_at=now,
            )
        )
        return True

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "stock": self.stock,
            "image_url": self.image_url,
            "category": self.category,
            "subcategory": self.subcategory,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

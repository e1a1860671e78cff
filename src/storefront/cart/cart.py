"""Shopping Cart aggregate (CQRS) — the guest or customer cart that feeds checkout.

A cart belongs either to a guest session (`session_id`, the local cart) or to
a signed-in customer (`customer_id`, the remote cart). Both share the same
shape: lines unique by product, each carrying the name, price and image the
product had when it was added.

`revision` increases on every change. Reconciliation uses the guest cart's
id and revision as a merge token, and the customer cart remembers the tokens
it has already absorbed in `merged_tokens`, so replaying a merge is harmless.
"""

import json
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from storefront.cart.events import (
    CartCleared,
    CartCreated,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    CartsMerged,
)
from storefront.domain import storefront

CENTS = Decimal("0.01")


@storefront.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255, sanitize=False)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    image_url = String(max_length=1000)
    added_at = DateTime()

    @property
    def line_total(self) -> Decimal:
        return Decimal(str(self.unit_price)) * self.quantity


@storefront.aggregate
class ShoppingCart:
    customer_id = Identifier()  # Set for a customer's (remote) cart
    session_id = String(max_length=255)  # Set for a guest's (local) cart
    items = HasMany(CartItem)
    revision = Integer(default=0)
    merged_tokens = Text()  # JSON array of merge tokens already applied
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def items_must_be_unique_by_product(self):
        product_ids = [str(item.product_id) for item in (self.items or [])]
        if len(product_ids) != len(set(product_ids)):
            raise ValidationError({"items": ["A product can appear only once in a cart"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id=None, session_id=None):
        if not customer_id and not session_id:
            raise ValidationError({"cart": ["A cart needs a customer or a guest session"]})

        now = datetime.now(UTC)
        cart = cls(
            customer_id=customer_id,
            session_id=session_id,
            revision=0,
            merged_tokens=json.dumps([]),
            created_at=now,
            updated_at=now,
        )
        cart.raise_(
            CartCreated(
                cart_id=str(cart.id),
                customer_id=str(customer_id) if customer_id else None,
                session_id=session_id,
            )
        )
        return cart

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_guest(self) -> bool:
        return not self.customer_id

    @property
    def total(self) -> float:
        """Σ unit_price × quantity, rounded to cents."""
        amount = sum((item.line_total for item in (self.items or [])), Decimal("0"))
        return float(amount.quantize(CENTS, rounding=ROUND_HALF_UP))

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in (self.items or []))

    def item_for(self, product_id):
        return next((i for i in (self.items or []) if str(i.product_id) == str(product_id)), None)

    def quantity_of(self, product_id) -> int:
        item = self.item_for(product_id)
        return item.quantity if item else 0

    def snapshot(self) -> list[dict]:
        """The cart's lines as plain dicts, in the order they were added."""
        return [
            {
                "product_id": str(item.product_id),
                "name": item.name,
                "unit_price": item.unit_price,
                "quantity": item.quantity,
                "image_url": item.image_url,
            }
            for item in (self.items or [])
        ]

    def applied_merge_tokens(self) -> list[str]:
        return json.loads(self.merged_tokens) if self.merged_tokens else []

    def has_merged(self, merge_token) -> bool:
        return merge_token in self.applied_merge_tokens()

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def _touch(self, now=None):
        self.revision = (self.revision or 0) + 1
        self.updated_at = now or datetime.now(UTC)

    def add_item(self, product_id, name, unit_price, quantity, image_url=None):
        """Add a product to the cart, or increase its quantity if already present."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        now = datetime.now(UTC)
        existing = self.item_for(product_id)
        if existing:
            existing.quantity += quantity
            line_quantity = existing.quantity
        else:
            self.add_items(
                CartItem(
                    product_id=product_id,
                    name=name,
                    unit_price=unit_price,
                    quantity=quantity,
                    image_url=image_url,
                    added_at=now,
                )
            )
            line_quantity = quantity

        self._touch(now)

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                product_id=str(product_id),
                unit_price=unit_price,
                quantity=quantity,
                line_quantity=line_quantity,
            )
        )

    def update_item_quantity(self, product_id, new_quantity):
        """Set a line's quantity. Anything below 1 removes the line."""
        item = self.item_for(product_id)
        if item is None:
            raise ValidationError({"product_id": [f"Product {product_id} is not in the cart"]})

        if new_quantity < 1:
            self.remove_item(product_id)
            return

        previous_quantity = item.quantity
        item.quantity = new_quantity
        self._touch()

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_item(self, product_id):
        """Remove a product's line from the cart."""
        item = self.item_for(product_id)
        if item is None:
            raise ValidationError({"product_id": [f"Product {product_id} is not in the cart"]})

        self.remove_items(item)
        self._touch()

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                product_id=str(product_id),
            )
        )

    def clear(self):
        """Remove every line."""
        items = list(self.items or [])
        for item in items:
            self.remove_items(item)
        self._touch()

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                items_removed_count=len(items),
            )
        )

    # -------------------------------------------------------------------
    # Cart merging (guest → customer)
    # -------------------------------------------------------------------
    def merge_guest_cart(self, guest_cart_items, merge_token, source_cart_id=None) -> bool:
        """Merge a guest cart's lines into this cart.

        Quantities of products present in both carts are summed; products
        present in only one side are carried over unchanged. A merge token
        that was already applied is ignored and False is returned.

        Args:
            guest_cart_items: List of dicts with product_id, name, unit_price,
                quantity and image_url (see `snapshot`).
            merge_token: Identifies the guest cart state being merged.
            source_cart_id: The guest cart, for the event trail.
        """
        if self.has_merged(merge_token):
            return False

        now = datetime.now(UTC)
        for guest_item in guest_cart_items:
            existing = self.item_for(guest_item["product_id"])
            if existing:
                existing.quantity += guest_item["quantity"]
            else:
                self.add_items(
                    CartItem(
                        product_id=guest_item["product_id"],
                        name=guest_item["name"],
                        unit_price=guest_item["unit_price"],
                        quantity=guest_item["quantity"],
                        image_url=guest_item.get("image_url"),
                        added_at=now,
                    )
                )

        tokens = self.applied_merge_tokens()
        tokens.append(merge_token)
        self.merged_tokens = json.dumps(tokens)
        self._touch(now)

        self.raise_(
            CartsMerged(
                cart_id=str(self.id),
                source_cart_id=str(source_cart_id) if source_cart_id else None,
                merge_token=merge_token,
                items_merged_count=len(guest_cart_items),
            )
        )
        return True

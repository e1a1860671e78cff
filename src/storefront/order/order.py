"""Order aggregate (CQRS) — what the customer bought, where it ships, and whether it is paid.

An order is recorded once per checkout attempt, in Pending status, with a
snapshot of the cart lines taken at that moment. Later catalogue price
changes never touch a placed order.

State Machine:
    PENDING → COMPLETED   (payment confirmed by the gateway's webhook)
    PENDING → FAILED      (order abandoned or payment impossible)

Completed and Failed are terminal. Completing an order that is already
Completed is accepted as a no-op, because payment providers redeliver
webhooks.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from storefront.domain import storefront
from storefront.order.events import (
    CheckoutSessionAttached,
    OrderCompleted,
    OrderConfirmationSent,
    OrderFailed,
    OrderPlaced,
)
from storefront.order.pricing import OrderPricing, to_cents


class OrderStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.COMPLETED, OrderStatus.FAILED},
    OrderStatus.COMPLETED: set(),  # Terminal
    OrderStatus.FAILED: set(),  # Terminal
}


@storefront.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships, as entered at checkout."""

    full_name = String(required=True, max_length=255, sanitize=False)
    street = String(required=True, max_length=255, sanitize=False)
    city = String(required=True, max_length=100, sanitize=False)
    state = String(max_length=100, sanitize=False)
    postal_code = String(required=True, max_length=20, sanitize=False)
    country = String(required=True, max_length=100, sanitize=False)
    phone = String(max_length=30, sanitize=False)

    def to_dict(self) -> dict:
        return {
            "full_name": self.full_name,
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
            "phone": self.phone,
        }


@storefront.entity(part_of="Order")
class OrderItem:
    """A cart line frozen at checkout time."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255, sanitize=False)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    image_url = String(max_length=1000)

    def to_dict(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "name": self.name,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "image_url": self.image_url,
        }


@storefront.aggregate
class Order:
    customer_id = Identifier(required=True)
    customer_email = String(max_length=255)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(ShippingAddress)
    shipping_method = String(max_length=20, default="standard")
    subtotal = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    tax_total = Float(default=0.0)
    total_amount = Float(default=0.0)
    currency = String(max_length=3, default="USD")
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_session_id = String(max_length=255)
    payment_reference = String(max_length=255)
    failure_reason = String(max_length=500)
    confirmation_sent = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()
    completed_at = DateTime()

    @invariant.post
    def order_must_have_items(self):
        if not self.items:
            raise ValidationError({"items": ["An order needs at least one item"]})

    @invariant.post
    def total_must_add_up(self):
        expected = to_cents(self.subtotal or 0) + to_cents(self.shipping_cost or 0) + to_cents(self.tax_total or 0)
        if to_cents(self.total_amount or 0) != expected:
            raise ValidationError({"total_amount": ["Order total must equal subtotal plus shipping plus tax"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        customer_id,
        items_data,
        shipping_address,
        pricing: OrderPricing,
        shipping_method="standard",
        customer_email=None,
        currency="USD",
    ):
        """Record a new pending order.

        Args:
            customer_id: The customer placing the order.
            items_data: List of dicts with product_id, name, unit_price,
                        quantity, image_url.
            shipping_address: Dict with full_name, street, city, state,
                              postal_code, country, phone.
            pricing: Amounts computed by `price_order`.
        """
        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            customer_email=customer_email,
            items=[
                OrderItem(
                    product_id=item["product_id"],
                    name=item["name"],
                    unit_price=item["unit_price"],
                    quantity=item["quantity"],
                    image_url=item.get("image_url"),
                )
                for item in items_data
            ],
            shipping_address=ShippingAddress(**shipping_address),
            shipping_method=shipping_method,
            subtotal=pricing.subtotal,
            shipping_cost=pricing.shipping_cost,
            tax_total=pricing.tax_total,
            total_amount=pricing.total_amount,
            currency=currency,
            status=OrderStatus.PENDING.value,
            confirmation_sent=False,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                customer_email=customer_email,
                items=json.dumps([item.to_dict() for item in order.items]),
                shipping_address=json.dumps(order.shipping_address.to_dict()),
                shipping_method=shipping_method,
                subtotal=order.subtotal,
                shipping_cost=order.shipping_cost,
                tax_total=order.tax_total,
                total_amount=order.total_amount,
                currency=currency,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Validate that the current state allows transition to target."""
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def attach_checkout_session(self, payment_session_id):
        """Remember the hosted payment session opened for this order."""
        if OrderStatus(self.status) != OrderStatus.PENDING:
            raise ValidationError({"status": ["Payment can only be requested for a pending order"]})

        self.payment_session_id = payment_session_id
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CheckoutSessionAttached(
                order_id=str(self.id),
                payment_session_id=payment_session_id,
            )
        )

    def complete(self, payment_reference=None) -> bool:
        """Mark the order paid. Returns False if it already was."""
        if OrderStatus(self.status) == OrderStatus.COMPLETED:
            return False

        self._assert_can_transition(OrderStatus.COMPLETED)

        now = datetime.now(UTC)
        self.status = OrderStatus.COMPLETED.value
        self.payment_reference = payment_reference
        self.completed_at = now
        self.updated_at = now

        self.raise_(
            OrderCompleted(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                payment_reference=payment_reference,
                total_amount=self.total_amount,
                completed_at=now,
            )
        )
        return True

    def fail(self, reason):
        self._assert_can_transition(OrderStatus.FAILED)

        now = datetime.now(UTC)
        self.status = OrderStatus.FAILED.value
        self.failure_reason = reason
        self.updated_at = now

        self.raise_(
            OrderFailed(
                order_id=str(self.id),
                reason=reason,
                failed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------
    def mark_confirmation_sent(self, notification_id) -> bool:
        """Record that the confirmation email went out. Returns False if already recorded."""
        if self.confirmation_sent:
            return False

        now = datetime.now(UTC)
        self.confirmation_sent = True
        self.updated_at = now

        self.raise_(
            OrderConfirmationSent(
                order_id=str(self.id),
                notification_id=str(notification_id),
                sent_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------
    def line_items(self) -> list[dict]:
        return [item.to_dict() for item in (self.items or [])]

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "customer_id": str(self.customer_id),
            "customer_email": self.customer_email,
            "items": self.line_items(),
            "shipping_address": self.shipping_address.to_dict() if self.shipping_address else None,
            "shipping_method": self.shipping_method,
            "subtotal": self.subtotal,
            "shipping_cost": self.shipping_cost,
            "tax_total": self.tax_total,
            "total_amount": self.total_amount,
            "currency": self.currency,
            "status": self.status,
            "payment_session_id": self.payment_session_id,
            "payment_reference": self.payment_reference,
            "failure_reason": self.failure_reason,
            "confirmation_sent": bool(self.confirmation_sent),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

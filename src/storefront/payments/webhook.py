"""Payment completion webhook.

The gateway calls back once the customer has paid. Nothing in the payload is
trusted until its signature verifies against the webhook secret; a payload
that fails verification is rejected without touching any order.

A verified `checkout.session.completed` event completes the order named in
the session metadata, provided the session was paid in full: its payment
status is `paid` and its `amount_total` (and currency, when given) match the
order. The order confirmation is then sent, once. Redelivered events find
the order already Completed and the confirmation already sent, and are
simply acknowledged. A failed email never undoes the completion; the order
keeps `confirmation_sent=False` instead.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaValidationError

from storefront.notifications.service import send_order_confirmation
from storefront.order.completion import CompleteOrder
from storefront.order.order import Order
from storefront.payments.checkout import to_minor_units
from storefront.payments.gateway import get_gateway
from storefront.payments.gateway.port import PaymentGateway
from storefront.shared.locks import order_payment_locks

logger = structlog.get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
PAID = "paid"


class WebhookRejected(Exception):
    """The webhook payload could not be verified or understood."""


# ---------------------------------------------------------------------------
# Payload schema
# ---------------------------------------------------------------------------
# Providers add fields over time, so anything beyond what is read here is
# ignored. Missing required fields fail validation.
class GatewayEventData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object: dict


class GatewayEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    data: GatewayEventData


class CheckoutSessionObject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    metadata: dict[str, str] = Field(default_factory=dict)
    payment_intent: str | None = None
    payment_status: str | None = None
    amount_total: int | None = None
    currency: str | None = None

    @property
    def order_id(self) -> str | None:
        return self.metadata.get("order_id") or self.metadata.get("orderId")

    def unpaid_reason(self, order: Order) -> str | None:
        """Why this session does not pay for `order` in full, or None if it does."""
        if self.payment_status != PAID:
            return f"payment status is {self.payment_status or 'missing'}"
        expected = to_minor_units(order.total_amount)
        if self.amount_total != expected:
            return f"amount paid {self.amount_total} does not match order total {expected}"
        if self.currency and self.currency.lower() != (order.currency or "").lower():
            return f"paid in {self.currency.upper()}, order is in {order.currency}"
        return None


@dataclass
class WebhookOutcome:
    event_id: str
    event_type: str
    status: str  # completed | duplicate | ignored | order_not_found
    order_id: str | None = None
    notification_sent: bool = False


# ---------------------------------------------------------------------------
# Handling
# ---------------------------------------------------------------------------
def parse_event(payload: str | bytes) -> GatewayEvent:
    try:
        return GatewayEvent.model_validate_json(payload)
    except SchemaValidationError as exc:
        logger.warning("Malformed webhook payload", errors=exc.error_count())
        raise WebhookRejected("Malformed webhook payload") from exc


def handle_gateway_event(
    payload: str | bytes,
    signature: str | None,
    gateway: PaymentGateway | None = None,
) -> WebhookOutcome:
    """Verify, parse and act on one webhook delivery.

    Raises WebhookRejected when the signature does not verify or the payload
    does not match the event schema.
    """
    gateway = gateway or get_gateway()
    if not gateway.verify_webhook_signature(payload, signature):
        logger.warning(
            "Webhook signature verification failed",
            gateway=type(gateway).__name__,
            signature_present=bool(signature),
        )
        raise WebhookRejected("Invalid webhook signature")

    event = parse_event(payload)

    if event.type != CHECKOUT_COMPLETED:
        logger.info("Ignoring webhook event", event_id=event.id, event_type=event.type)
        return WebhookOutcome(event_id=event.id, event_type=event.type, status="ignored")

    try:
        session = CheckoutSessionObject.model_validate(event.data.object)
    except SchemaValidationError as exc:
        logger.warning("Malformed checkout session in webhook", event_id=event.id, errors=exc.error_count())
        raise WebhookRejected("Malformed checkout session") from exc

    if not session.order_id:
        logger.warning("Checkout session carries no order id", event_id=event.id, session_id=session.id)
        return WebhookOutcome(event_id=event.id, event_type=event.type, status="ignored")

    return complete_paid_order(event, session)


def complete_paid_order(event: GatewayEvent, session: CheckoutSessionObject) -> WebhookOutcome:
    """Complete the order and send its confirmation, serialized per order."""
    order_id = session.order_id
    with order_payment_locks.hold(order_id):
        try:
            order = current_domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError:
            logger.warning("Webhook references unknown order", event_id=event.id, order_id=order_id)
            return WebhookOutcome(
                event_id=event.id,
                event_type=event.type,
                status="order_not_found",
                order_id=order_id,
            )

        reason = session.unpaid_reason(order)
        if reason:
            logger.warning(
                "Checkout session does not pay for the order",
                event_id=event.id,
                order_id=order_id,
                session_id=session.id,
                reason=reason,
            )
            return WebhookOutcome(event_id=event.id, event_type=event.type, status="ignored", order_id=order_id)

        try:
            completed = current_domain.process(
                CompleteOrder(order_id=order_id, payment_reference=session.payment_intent or session.id),
                asynchronous=False,
            )
        except ValidationError as exc:
            logger.warning(
                "Order cannot be completed",
                event_id=event.id,
                order_id=order_id,
                error=str(exc.messages),
            )
            return WebhookOutcome(event_id=event.id, event_type=event.type, status="ignored", order_id=order_id)

        if completed:
            logger.info("Order completed by payment webhook", event_id=event.id, order_id=order_id)
        else:
            logger.info("Order already completed, webhook redelivered", event_id=event.id, order_id=order_id)

        order = current_domain.repository_for(Order).get(order_id)
        notification_sent = False
        if not order.confirmation_sent:
            try:
                notification = send_order_confirmation(order_id)
                notification_sent = notification.is_sent
            except Exception as exc:
                logger.error(
                    "Order confirmation could not be sent",
                    order_id=order_id,
                    error=str(exc),
                )

        return WebhookOutcome(
            event_id=event.id,
            event_type=event.type,
            status="completed" if completed else "duplicate",
            order_id=order_id,
            notification_sent=notification_sent,
        )

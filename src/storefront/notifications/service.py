"""Notification service — order confirmation after payment.

Composes the confirmation from the order (id, line items, totals and
shipping address), records it as a Notification, dispatches it by email,
and flags the order once the email has gone out. A failed dispatch leaves
the notification FAILED and the order's `confirmation_sent` False.
"""

import structlog
from protean.utils.globals import current_domain

from storefront.notifications.dispatch import dispatch
from storefront.notifications.notification import Notification, NotificationChannel, NotificationType
from storefront.notifications.templates import get_template
from storefront.order.confirmation import RecordConfirmationSent
from storefront.order.order import Order

logger = structlog.get_logger(__name__)


def confirmation_context(order: Order) -> dict:
    return {
        "order_id": str(order.id),
        "items": order.line_items(),
        "subtotal": order.subtotal,
        "shipping_cost": order.shipping_cost,
        "tax_total": order.tax_total,
        "total_amount": order.total_amount,
        "currency": order.currency,
        "shipping_address": order.shipping_address.to_dict() if order.shipping_address else {},
    }


def send_order_confirmation(order_id) -> Notification:
    order = current_domain.repository_for(Order).get(order_id)

    template = get_template(NotificationType.ORDER_CONFIRMATION.value)
    content = template.render(confirmation_context(order))

    notification = Notification.create(
        recipient_id=str(order.customer_id),
        recipient_email=order.customer_email,
        notification_type=NotificationType.ORDER_CONFIRMATION.value,
        channel=NotificationChannel.EMAIL.value,
        subject=content["subject"],
        body=content["body"],
        html_body=content.get("html_body"),
        order_id=str(order.id),
    )
    current_domain.repository_for(Notification).add(notification)

    notification = dispatch(notification)

    if notification.is_sent:
        current_domain.process(
            RecordConfirmationSent(order_id=str(order.id), notification_id=str(notification.id)),
            asynchronous=False,
        )
        logger.info(
            "Order confirmation sent",
            order_id=str(order.id),
            notification_id=str(notification.id),
        )
    else:
        logger.warning(
            "Order confirmation failed",
            order_id=str(order.id),
            notification_id=str(notification.id),
            reason=notification.failure_reason,
        )
    return notification

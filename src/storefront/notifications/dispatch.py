"""Notification dispatch — hands a pending notification to its channel adapter.

Updates the notification to SENT or FAILED based on the adapter's answer.
Adapter exceptions are recorded as failures rather than propagated.
"""

import structlog
from protean.utils.globals import current_domain

from storefront.notifications.channel import get_channel
from storefront.notifications.notification import Notification, NotificationChannel, NotificationStatus

logger = structlog.get_logger(__name__)


def dispatch(notification: Notification) -> Notification:
    """Send `notification` and persist the outcome."""
    if NotificationStatus(notification.status) != NotificationStatus.PENDING:
        logger.info(
            "Notification not in PENDING status, skipping dispatch",
            notification_id=str(notification.id),
            status=notification.status,
        )
        return notification

    try:
        adapter = get_channel(notification.channel)
        result = _dispatch_via_channel(adapter, notification)

        if result.get("status") == "sent":
            notification.mark_sent(provider_message_id=result.get("message_id"))
        else:
            notification.mark_failed(result.get("error", "Unknown dispatch error"))
    except Exception as e:
        notification.mark_failed(str(e))
        logger.error(
            "Notification dispatch failed",
            notification_id=str(notification.id),
            error=str(e),
        )

    current_domain.repository_for(Notification).add(notification)
    return notification


def _dispatch_via_channel(adapter, notification: Notification) -> dict:
    """Route dispatch to the correct adapter method based on channel."""
    if notification.channel == NotificationChannel.EMAIL.value:
        if not notification.recipient_email:
            return {"status": "failed", "error": "Recipient has no email address"}
        return adapter.send(
            to=notification.recipient_email,
            subject=notification.subject or "",
            body=notification.body,
            html_body=notification.html_body,
        )
    return {"status": "failed", "error": f"Unknown channel: {notification.channel}"}

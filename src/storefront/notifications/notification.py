"""Notification aggregate (CQRS) — one message to one recipient over one channel.

State Machine:
    PENDING → SENT
    PENDING → FAILED
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text

from storefront.domain import storefront
from storefront.notifications.events import NotificationCreated, NotificationFailed, NotificationSent


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class NotificationType(Enum):
    ORDER_CONFIRMATION = "OrderConfirmation"


class NotificationChannel(Enum):
    EMAIL = "Email"


class NotificationStatus(Enum):
    PENDING = "Pending"
    SENT = "Sent"
    FAILED = "Failed"


_VALID_TRANSITIONS = {
    NotificationStatus.PENDING: {NotificationStatus.SENT, NotificationStatus.FAILED},
    NotificationStatus.SENT: set(),  # Terminal
    NotificationStatus.FAILED: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Notification:
    # Recipient
    recipient_id: Identifier(required=True)
    recipient_email: String(max_length=255)

    # Notification type and channel
    notification_type: String(choices=NotificationType, required=True)
    channel: String(choices=NotificationChannel, required=True)

    # Content
    subject: String(max_length=500, sanitize=False)
    body: Text(required=True, sanitize=False)
    html_body: Text(sanitize=False)  # Built from escaped values

    # Source correlation
    order_id: Identifier()

    # Status
    status: String(choices=NotificationStatus, default=NotificationStatus.PENDING.value)
    provider_message_id: String(max_length=255)
    failure_reason: String(max_length=500)

    # Timestamps
    created_at: DateTime()
    sent_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        recipient_id,
        notification_type,
        channel,
        body,
        subject=None,
        html_body=None,
        recipient_email=None,
        order_id=None,
    ):
        """Create a new notification in PENDING status."""
        now = datetime.now(UTC)

        notification = cls(
            recipient_id=recipient_id,
            recipient_email=recipient_email,
            notification_type=notification_type,
            channel=channel,
            subject=subject,
            body=body,
            html_body=html_body,
            order_id=order_id,
            status=NotificationStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

        notification.raise_(
            NotificationCreated(
                notification_id=str(notification.id),
                recipient_id=str(recipient_id),
                notification_type=notification_type,
                channel=channel,
                order_id=str(order_id) if order_id else None,
                created_at=now,
            )
        )

        return notification

    @property
    def is_sent(self) -> bool:
        return self.status == NotificationStatus.SENT.value

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Validate state machine transition."""
        current = NotificationStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def mark_sent(self, provider_message_id=None, sent_at=None):
        """Mark notification as accepted by the channel."""
        self._assert_can_transition(NotificationStatus.SENT)

        now = sent_at or datetime.now(UTC)
        self.status = NotificationStatus.SENT.value
        self.provider_message_id = provider_message_id
        self.sent_at = now
        self.updated_at = now

        self.raise_(
            NotificationSent(
                notification_id=str(self.id),
                recipient_id=str(self.recipient_id),
                channel=self.channel,
                provider_message_id=provider_message_id,
                sent_at=now,
            )
        )

    def mark_failed(self, reason):
        """Mark notification as failed."""
        self._assert_can_transition(NotificationStatus.FAILED)

        now = datetime.now(UTC)
        self.status = NotificationStatus.FAILED.value
        self.failure_reason = reason
        self.updated_at = now

        self.raise_(
            NotificationFailed(
                notification_id=str(self.id),
                recipient_id=str(self.recipient_id),
                channel=self.channel,
                reason=reason,
                failed_at=now,
            )
        )

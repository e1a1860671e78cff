"""Domain events for the Notification aggregate."""

from protean.fields import DateTime, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="Notification")
class NotificationCreated:
    """A notification was composed and queued for dispatch."""

    __version__ = 1

    notification_id = Identifier(required=True)
    recipient_id = Identifier(required=True)
    notification_type = String(required=True)
    channel = String(required=True)
    order_id = Identifier()
    created_at = DateTime(required=True)


@storefront.event(part_of="Notification")
class NotificationSent:
    """The channel accepted the notification for delivery."""

    __version__ = 1

    notification_id = Identifier(required=True)
    recipient_id = Identifier(required=True)
    channel = String(required=True)
    provider_message_id = String()
    sent_at = DateTime(required=True)


@storefront.event(part_of="Notification")
class NotificationFailed:
    """The channel refused or could not take the notification."""

    __version__ = 1

    notification_id = Identifier(required=True)
    recipient_id = Identifier(required=True)
    channel = String(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)

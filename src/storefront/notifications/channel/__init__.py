"""Channel adapter registry — pluggable notification dispatch channels.

Provides singleton access to channel adapters. Uses the fake email adapter
by default; the Resend adapter is used when RESEND_API_KEY is configured.
"""

from storefront.notifications.notification import NotificationChannel
from storefront.shared.settings import get_settings

_channel_instances: dict[str, object] = {}


def get_channel(channel_type: str):
    """Return the configured channel adapter (singleton per channel type).

    Args:
        channel_type: A NotificationChannel enum value ("Email")
    """
    if channel_type not in _channel_instances:
        if channel_type == NotificationChannel.EMAIL.value:
            settings = get_settings()
            if settings.resend_api_key:
                from storefront.notifications.channel.resend_email import ResendEmailAdapter

                _channel_instances[channel_type] = ResendEmailAdapter(settings.resend_api_key, settings.email_from)
            else:
                from storefront.notifications.channel.fake_email import FakeEmailAdapter

                _channel_instances[channel_type] = FakeEmailAdapter()
        else:
            raise ValueError(f"Unknown channel type: {channel_type}")

    return _channel_instances[channel_type]


def reset_channels():
    """Reset all channel singletons (useful for testing)."""
    _channel_instances.clear()

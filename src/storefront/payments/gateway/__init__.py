"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- StripeGateway when STRIPE_SECRET_KEY is configured
- FakeGateway for development and testing otherwise

Without a webhook secret (STRIPE_WEBHOOK_SECRET is required outside
development and test) every webhook signature is rejected.
"""

import structlog

from storefront.payments.gateway.fake_adapter import FakeGateway
from storefront.payments.gateway.port import PaymentGateway
from storefront.payments.gateway.stripe_adapter import StripeGateway
from storefront.shared.settings import current_environment, get_settings

logger = structlog.get_logger(__name__)

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway."""
    global _current_gateway
    if _current_gateway is None:
        settings = get_settings()
        if not settings.stripe_webhook_secret:
            logger.error(
                "STRIPE_WEBHOOK_SECRET is not set; payment webhooks will be rejected",
                environment=current_environment(),
            )
        if settings.stripe_secret_key:
            _current_gateway = StripeGateway(settings.stripe_secret_key, settings.stripe_webhook_secret)
        else:
            _current_gateway = FakeGateway(webhook_secret=settings.stripe_webhook_secret)
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None

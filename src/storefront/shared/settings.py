"""Application settings read from the environment.

Settings are read on every call so that tests (and long-running workers
picking up rotated secrets) always see the current environment.
"""

import os
from dataclasses import dataclass

# Only ever used outside staging and production, so local development and the
# test suite can sign webhooks without any configuration.
DEVELOPMENT_WEBHOOK_SECRET = "whsec_storefront_development"
DEVELOPMENT_ENVIRONMENTS = ("development", "test")


@dataclass(frozen=True)
class Settings:
    stripe_secret_key: str | None
    stripe_webhook_secret: str | None
    resend_api_key: str | None
    base_url: str
    email_from: str
    currency: str
    tax_rate: float


def current_environment() -> str:
    return (os.environ.get("PROTEAN_ENV") or "development").lower()


def webhook_secret() -> str | None:
    """The configured webhook secret; None when unset outside development."""
    secret = os.getenv("STRIPE_WEBHOOK_SECRET")
    if secret:
        return secret
    if current_environment() in DEVELOPMENT_ENVIRONMENTS:
        return DEVELOPMENT_WEBHOOK_SECRET
    return None


def get_settings() -> Settings:
    """Return the settings for the current environment."""
    return Settings(
        stripe_secret_key=os.getenv("STRIPE_SECRET_KEY") or None,
        stripe_webhook_secret=webhook_secret(),
        resend_api_key=os.getenv("RESEND_API_KEY") or None,
        base_url=os.getenv("STOREFRONT_BASE_URL", "http://localhost:3000").rstrip("/"),
        email_from=os.getenv("STOREFRONT_EMAIL_FROM", "Storefront <orders@storefront.local>"),
        currency=os.getenv("STOREFRONT_CURRENCY", "USD").upper(),
        tax_rate=float(os.getenv("STOREFRONT_TAX_RATE", "0.07")),
    )


def is_production() -> bool:
    return current_environment() == "production"

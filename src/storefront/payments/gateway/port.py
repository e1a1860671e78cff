"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between FakeGateway (dev/test) and StripeGateway
(production) without changing any domain or application code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CheckoutSessionResult:
    """Result of opening a hosted checkout session."""

    success: bool
    session_id: str | None = None
    url: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_checkout_session(
        self,
        line_items: list[dict],
        order_id: str,
        success_url: str,
        cancel_url: str,
        currency: str,
    ) -> CheckoutSessionResult:
        """Open a hosted checkout session tagged with `order_id`.

        `line_items` are already in provider shape (see
        `storefront.payments.checkout.to_provider_line_items`).
        """
        ...

    @abstractmethod
    def verify_webhook_signature(
        self,
        payload: str | bytes,
        signature: str | None,
    ) -> bool:
        """Verify that a webhook payload is authentically from the gateway."""
        ...

"""Stripe payment gateway adapter.

Uses the stripe-python SDK to:
- Create hosted Checkout Sessions carrying the order id as metadata
- Verify webhook signatures using Stripe's signing secret
"""

import structlog
import stripe

from storefront.payments.gateway.port import CheckoutSessionResult, PaymentGateway

logger = structlog.get_logger(__name__)


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, api_key: str, webhook_secret: str | None) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def create_checkout_session(
        self,
        line_items: list[dict],
        order_id: str,
        success_url: str,
        cancel_url: str,
        currency: str,
    ) -> CheckoutSessionResult:
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=line_items,
                success_url=success_url,
                cancel_url=cancel_url,
                metadata={"order_id": order_id},
            )
        except stripe.StripeError as exc:
            logger.warning(
                "Stripe checkout session creation failed",
                order_id=order_id,
                error=str(exc),
            )
            return CheckoutSessionResult(success=False, failure_reason=exc.user_message or str(exc))

        return CheckoutSessionResult(success=True, session_id=session.id, url=session.url)

    def verify_webhook_signature(self, payload: str | bytes, signature: str | None) -> bool:
        if not signature or not self.webhook_secret:
            return False
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError):
            return False
        return True

"""Configurable fake payment gateway for development and testing.

This adapter simulates the hosted checkout without any external calls.
It can be configured at runtime to succeed or fail, making it useful for:
- Manual API testing via /payments/gateway/configure
- Automated tests with predictable outcomes
- Development without real gateway credentials

Webhook signatures use the same scheme as Stripe (`t=<timestamp>,v1=<hmac>`
over `"<timestamp>.<payload>"` with the webhook secret), verified by the
stripe SDK itself, so payloads signed with `sign()` are also accepted by
`StripeGateway` configured with the same secret.
"""

import hashlib
import hmac
import time
from uuid import uuid4

import stripe

from storefront.payments.gateway.port import CheckoutSessionResult, PaymentGateway

SIGNATURE_TOLERANCE_SECONDS = 300


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, webhook_secret: str | None, checkout_host: str = "https://checkout.fake.local") -> None:
        self.webhook_secret = webhook_secret
        self.checkout_host = checkout_host
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment provider unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Payment provider unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_checkout_session(
        self,
        line_items: list[dict],
        order_id: str,
        success_url: str,
        cancel_url: str,
        currency: str,
    ) -> CheckoutSessionResult:
        call = {
            "method": "create_checkout_session",
            "line_items": line_items,
            "order_id": order_id,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "currency": currency,
            "metadata": {"order_id": order_id},
            "amount_total": sum(item["price_data"]["unit_amount"] * item["quantity"] for item in line_items),
        }
        self.calls.append(call)

        if self.should_succeed:
            session_id = f"cs_fake_{uuid4().hex[:16]}"
            return CheckoutSessionResult(
                success=True,
                session_id=session_id,
                url=f"{self.checkout_host}/pay/{session_id}",
            )
        return CheckoutSessionResult(
            success=False,
            failure_reason=self.failure_reason,
        )

    def sign(self, payload: str | bytes, timestamp: int | None = None) -> str:
        """Produce a signature header for `payload`, as the provider would."""
        if not self.webhook_secret:
            raise ValueError("No webhook secret configured")
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        timestamp = int(time.time()) if timestamp is None else timestamp
        signed_payload = f"{timestamp}.{payload}"
        digest = hmac.new(
            self.webhook_secret.encode("utf-8"),
            signed_payload.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        return f"t={timestamp},v1={digest}"

    def verify_webhook_signature(self, payload: str | bytes, signature: str | None) -> bool:
        if not signature or not self.webhook_secret:
            return False
        try:
            if isinstance(payload, bytes):
                payload = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                payload,
                signature,
                self.webhook_secret,
                tolerance=SIGNATURE_TOLERANCE_SECONDS,
            )
        except (ValueError, stripe.SignatureVerificationError):
            return False
        return True

"""Resend email adapter — delivers through the Resend HTTP API."""

import requests
import structlog

from storefront.notifications.channel.email_port import EmailPort

logger = structlog.get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class ResendEmailAdapter(EmailPort):
    def __init__(self, api_key: str, sender: str, timeout: float = 10.0):
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        payload = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "text": body,
        }
        if html_body:
            payload["html"] = html_body

        try:
            response = requests.post(
                RESEND_API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as exc:
            logger.warning("Resend email delivery failed", error=str(exc))
            return {"message_id": None, "status": "failed", "error": str(exc)}

        return {"message_id": response.json().get("id"), "status": "sent"}

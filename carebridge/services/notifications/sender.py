"""Resend client for reminder emails."""

from typing import Any, Dict, Optional

import httpx

from ...config import Settings
from ...errors import DeliveryError
from ...logging_config import get_logger
from .templates import ReminderEmail, render_html, render_text

logger = get_logger(__name__)

RESEND_EMAILS_URL = "https://api.resend.com/emails"


class NotificationSender:
    """Sends one reminder email through the Resend HTTP API.

    Stateless apart from configuration; no retries. Any provider
    rejection, transport failure or timeout surfaces as DeliveryError.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = settings.resend_api_key
        self.sender_email = settings.resend_sender_email
        self.sender_name = settings.resend_sender_name
        self.timeout = settings.http_timeout_seconds
        self._transport = transport

    def build_payload(self, email: ReminderEmail) -> Dict[str, Any]:
        return {
            "from": f"{self.sender_name} <{self.sender_email}>",
            "to": [email.recipient],
            "subject": email.subject,
            "html": render_html(email),
            "text": render_text(email),
        }

    async def send(self, email: ReminderEmail) -> str:
        """Send the email and return the provider message id."""

        if not self.api_key:
            raise DeliveryError("Resend API key not configured. Set RESEND_API_KEY.")
        if not self.sender_email:
            raise DeliveryError("Resend sender email not configured. Set RESEND_SENDER_EMAIL.")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(RESEND_EMAILS_URL, headers=headers, json=self.build_payload(email))
        except httpx.HTTPError as e:
            logger.error(f"Resend request failed for {email.recipient}: {e!r}")
            raise DeliveryError("Failed to reach mail provider", detail=str(e)) from e

        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.error(f"Resend rejected email to {email.recipient}: {response.status_code} {detail}")
            raise DeliveryError(f"Failed to send email via Resend: {detail}", detail=detail)

        message_id = _message_id(response)
        logger.info(f"Email sent to {email.recipient} for {email.medicine_name} ({message_id})")
        return message_id


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)


def _message_id(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return ""
    return str(body.get("id", "")) if isinstance(body, dict) else ""

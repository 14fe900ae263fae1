# =============================================================================
# lib/email_client.py - Resend Email Wrapper
# =============================================================================
# Sends one HTML email per call through the Resend HTTP API.
# Templates live in lib/templates.py; deciding whether a failed send should
# fail the request is the caller's job.
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"


class EmailSendError(Exception):
    """Raised when Resend rejects a message or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class EmailClient:
    """Minimal Resend client."""

    def __init__(self, settings: Settings | None = None, http_client: httpx.Client | None = None):
        self.settings = settings or default_settings
        self._http = http_client or httpx.Client(timeout=self.settings.HTTP_TIMEOUT_SECONDS)

    def send(self, to: str | list[str], subject: str, html: str) -> str | None:
        """
        Send an email.

        Returns:
            The provider's message id (if any)

        Raises:
            EmailSendError: If the provider is unconfigured, unreachable,
                or rejects the message
        """
        if not self.settings.RESEND_API_KEY:
            raise EmailSendError("RESEND_API_KEY is not configured")

        recipients = [to] if isinstance(to, str) else list(to)
        body: dict[str, Any] = {
            "from": self.settings.EMAIL_FROM,
            "to": recipients,
            "subject": subject,
            "html": html,
        }

        try:
            response = self._http.post(
                RESEND_URL,
                json=body,
                headers={"Authorization": f"Bearer {self.settings.RESEND_API_KEY}"},
            )
        except httpx.HTTPError as e:
            raise EmailSendError(f"Email provider unreachable: {e}")

        if response.status_code >= 400:
            raise EmailSendError(
                f"Email provider rejected message: {response.text[:200]}",
                status_code=response.status_code,
            )

        message_id = None
        if response.headers.get("content-type", "").startswith("application/json"):
            message_id = response.json().get("id")
        logger.info(f"Sent email '{subject}' to {len(recipients)} recipient(s)")
        return message_id

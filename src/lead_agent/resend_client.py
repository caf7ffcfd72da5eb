"""Transactional email sending through the Resend API."""

from __future__ import annotations

import uuid
from typing import Optional, Sequence

import httpx
import structlog

from .config import Settings
from .errors import UpstreamError

LOGGER = structlog.get_logger(__name__)


class EmailClient:
    """Sends one email per call, each tagged with a fresh idempotency key."""

    def __init__(
        self,
        api_key: str,
        *,
        from_address: str,
        base_url: str = "https://api.resend.com",
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self.from_address = from_address
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> Optional["EmailClient"]:
        api_key = settings.secret(settings.resend_api_key)
        if not api_key:
            return None
        return cls(
            api_key,
            from_address=settings.resend_from,
            base_url=settings.resend_base_url,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    async def send(
        self,
        to: Sequence[str],
        subject: str,
        html: str,
        text: str,
        *,
        reply_to: Optional[str] = None,
    ) -> str:
        """Send an email and return the provider's message id."""
        payload = {
            "from": self.from_address,
            "to": list(to),
            "subject": subject,
            "html": html,
            "text": text,
        }
        if reply_to:
            payload["reply_to"] = reply_to

        idempotency_key = uuid.uuid4().hex
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Idempotency-Key": idempotency_key,
        }

        LOGGER.info("email.send.start", subject=subject, idempotency_key=idempotency_key)
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post("/emails", json=payload, headers=headers)
        except httpx.HTTPError as exc:
            LOGGER.error("email.send.error", error=str(exc))
            raise UpstreamError("Email service is unavailable.") from exc

        if not response.is_success:
            LOGGER.error("email.send.failed", status_code=response.status_code, body=response.text[:500])
            raise UpstreamError(f"Email send failed with {response.status_code}.")

        message_id = ""
        try:
            message_id = str(response.json().get("id", ""))
        except (ValueError, AttributeError):
            pass
        LOGGER.info("email.send.success", message_id=message_id)
        return message_id

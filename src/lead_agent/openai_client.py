"""Wrapper around the OpenAI Responses API used for chat and lead extraction."""

from __future__ import annotations

from typing import Any, Optional

import httpx
import structlog

from .config import Settings
from .errors import UpstreamError

LOGGER = structlog.get_logger(__name__)


class CompletionClient:
    """Single-turn completion helper: one system instruction, one user turn."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self.model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> Optional["CompletionClient"]:
        """Build a client, or return None when no API key is configured."""
        api_key = settings.secret(settings.openai_api_key)
        if not api_key:
            return None
        return cls(
            api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    async def complete(self, system_prompt: str, user_message: str) -> str:
        """Return the model's text reply, stripped. Raises UpstreamError."""
        payload = {
            "model": self.model,
            "input": [
                {"role": "system", "content": [{"type": "input_text", "text": system_prompt}]},
                {"role": "user", "content": [{"type": "input_text", "text": user_message}]},
            ],
        }

        LOGGER.info("openai.request.start", model=self.model)
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    "/responses",
                    json=payload,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
        except httpx.HTTPError as exc:
            LOGGER.error("openai.request.error", error=str(exc))
            raise UpstreamError("AI service is unavailable.") from exc

        if not response.is_success:
            LOGGER.error("openai.request.failed", status_code=response.status_code, body=response.text[:500])
            raise UpstreamError(f"AI service returned {response.status_code}.")

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamError("AI service returned an unreadable response.") from exc

        text = self._output_text(body).strip()
        LOGGER.debug("openai.response", preview=text[:200], total_length=len(text))
        return text

    @staticmethod
    def _output_text(body: Any) -> str:
        """Concatenate the ``output_text`` parts of a Responses API payload."""
        if not isinstance(body, dict):
            return ""
        direct = body.get("output_text")
        if isinstance(direct, str):
            return direct

        fragments: list[str] = []
        for item in body.get("output") or []:
            if not isinstance(item, dict):
                continue
            for part in item.get("content") or []:
                if isinstance(part, dict) and part.get("type") == "output_text":
                    fragments.append(str(part.get("text", "")))
        return "".join(fragments)

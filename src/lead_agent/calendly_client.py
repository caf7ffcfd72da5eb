"""Calendly v2 REST client used by availability search and booking."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
import structlog

from .config import Settings
from .errors import BookingFailed, UpstreamError
from .utils import format_instant

LOGGER = structlog.get_logger(__name__)


@dataclass
class LocationLookup:
    """Result of the best-effort event type location lookup."""

    location: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class CalendlyClient:
    """Thin async wrapper over the endpoints the scheduling flow needs."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://api.calendly.com",
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._token = token
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> Optional["CalendlyClient"]:
        token = settings.secret(settings.calendly_token)
        if not token:
            return None
        return cls(
            token,
            base_url=settings.calendly_base_url,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    async def get_current_user(self) -> Dict[str, Any]:
        body = await self._request("GET", "/users/me", failure="Calendly user lookup failed.")
        resource = body.get("resource")
        if not isinstance(resource, dict) or not resource.get("uri"):
            raise UpstreamError("Calendly user lookup failed.")
        return resource

    async def list_event_types(self, user_uri: str) -> List[Dict[str, Any]]:
        body = await self._request(
            "GET",
            "/event_types",
            params={"user": user_uri, "active": "true"},
            failure="Calendly event type lookup failed.",
        )
        return [item for item in body.get("collection") or [] if isinstance(item, dict)]

    async def list_available_times(
        self, event_type_uri: str, start: datetime, end: datetime
    ) -> List[Dict[str, Any]]:
        body = await self._request(
            "GET",
            "/event_type_available_times",
            params={
                "event_type": event_type_uri,
                "start_time": format_instant(start),
                "end_time": format_instant(end),
            },
            failure="Calendly availability lookup failed.",
        )
        return [item for item in body.get("collection") or [] if isinstance(item, dict)]

    async def lookup_location(self, event_type_uri: str) -> LocationLookup:
        """Return the first configured location of an event type, or the reason there is none."""
        if not event_type_uri.startswith(f"{self.base_url}/"):
            return LocationLookup(error="event type is not hosted on the configured Calendly API")
        try:
            body = await self._request("GET", event_type_uri, failure="Calendly location lookup failed.")
        except UpstreamError as exc:
            return LocationLookup(error=exc.message)

        resource = body.get("resource") or {}
        locations = resource.get("locations") if isinstance(resource, dict) else None
        if not locations or not isinstance(locations[0], dict) or not locations[0].get("kind"):
            return LocationLookup(error="event type has no location configured")

        first = locations[0]
        location: Dict[str, Any] = {"kind": first["kind"]}
        if first.get("location"):
            location["location"] = first["location"]
        return LocationLookup(location=location)

    async def create_invitee(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Book an invitee into a slot. Raises BookingFailed on any failure."""
        try:
            body = await self._request("POST", "/invitees", json=payload, failure="Calendly booking failed.")
        except UpstreamError as exc:
            raise BookingFailed(exc.message) from exc
        resource = body.get("resource")
        return resource if isinstance(resource, dict) else {}

    async def _request(
        self,
        method: str,
        url: str,
        *,
        failure: str,
        params: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        LOGGER.info("calendly.request.start", method=method, url=url)
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers={"Authorization": f"Bearer {self._token}"},
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            LOGGER.error("calendly.request.error", url=url, error=str(exc))
            raise UpstreamError(failure) from exc

        if not response.is_success:
            LOGGER.error(
                "calendly.request.failed",
                url=url,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise UpstreamError(failure)

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamError(failure) from exc
        return body if isinstance(body, dict) else {}

"""Turns an offered slot into a confirmed Calendly invitee."""

from __future__ import annotations

from typing import Any, Dict

import structlog

from .calendly_client import CalendlyClient
from .models import BookingConfirmation
from .slots import format_slot_label

LOGGER = structlog.get_logger(__name__)


class BookingConfirmer:
    def __init__(self, client: CalendlyClient):
        self._client = client

    async def confirm(
        self,
        name: str,
        email: str,
        timezone_name: str,
        event_type_uri: str,
        start_time: str,
    ) -> BookingConfirmation:
        """Book the slot; the event type/start pair is trusted as sent by the caller."""
        payload: Dict[str, Any] = {
            "event_type": event_type_uri,
            "start_time": start_time,
            "invitee": {"name": name, "email": email, "timezone": timezone_name},
        }

        lookup = await self._client.lookup_location(event_type_uri)
        if lookup.location is not None:
            payload["location"] = lookup.location
        else:
            # Booking proceeds without a location; the reason is only logged.
            LOGGER.warning("booking.location_skipped", event_type=event_type_uri, reason=lookup.error)

        resource = await self._client.create_invitee(payload)
        LOGGER.info("booking.created", invitee=resource.get("uri"), start_time=start_time)

        label = format_slot_label(start_time, timezone_name)
        return BookingConfirmation(
            summary=f"You're booked for {label}. A calendar invite is on its way to {email}.",
            reschedule_url=resource.get("reschedule_url"),
            cancel_url=resource.get("cancel_url"),
        )

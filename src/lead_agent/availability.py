"""Availability search: calendar identity -> event type -> filtered open slots."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

import structlog

from .calendly_client import CalendlyClient
from .errors import UpstreamError
from .models import AvailabilitySlot, SlotSearchResult
from .slots import format_slot_label, slot_matches_window
from .time_window import parse_window
from .utils import TIME_ERRORS, format_instant, get_zone, now_utc, parse_instant

LOGGER = structlog.get_logger(__name__)

MAX_SUGGESTIONS = 3
SEARCH_SPAN = timedelta(days=7)

FOUND_SUMMARY = "Here are a few open times that fit your preferred hours."
EMPTY_SUMMARY = (
    "I couldn't find open times in that window over the next week. "
    "Try widening your preferred hours or choosing a later start date."
)


def select_event_type(event_types: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """Prefer an event type named like an intro call, else the first one."""
    if not event_types:
        raise UpstreamError("No active Calendly event types found.")
    for event_type in event_types:
        if "intro" in str(event_type.get("name", "")).lower():
            return event_type
    return event_types[0]


def resolve_search_start(start_after: Optional[str], timezone_name: str, now: datetime) -> datetime:
    """Use ``start_after`` when it parses and lies in the future, else ``now``."""
    if not start_after or not start_after.strip():
        return now
    try:
        zone = get_zone(timezone_name)
    except TIME_ERRORS:
        zone = None
    try:
        start = parse_instant(start_after, default_zone=zone)
    except TIME_ERRORS as exc:
        LOGGER.warning("availability.start_after_invalid", value=start_after, error=str(exc))
        return now
    return start if start > now else now


class AvailabilityBroker:
    """Finds up to three open slots matching the user's hour window."""

    def __init__(self, client: CalendlyClient):
        self._client = client

    async def find_slots(
        self,
        times: str,
        timezone_name: str,
        start_after: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> SlotSearchResult:
        user = await self._client.get_current_user()
        event_types = await self._client.list_event_types(user["uri"])
        event_type = select_event_type(event_types)
        event_type_uri = str(event_type.get("uri", ""))
        LOGGER.info("availability.event_type", name=event_type.get("name"), uri=event_type_uri)

        start = resolve_search_start(start_after, timezone_name, now or now_utc())
        available = await self._client.list_available_times(event_type_uri, start, start + SEARCH_SPAN)

        window = parse_window(times)
        duration = _duration_minutes(event_type)
        suggestions: List[AvailabilitySlot] = []
        for item in available:
            start_time = item.get("start_time")
            if not isinstance(start_time, str) or not start_time:
                continue
            if item.get("status", "available") != "available":
                continue
            if not slot_matches_window(start_time, timezone_name, window):
                continue
            suggestions.append(
                AvailabilitySlot(
                    start_time=start_time,
                    end_time=_end_time(start_time, duration),
                    label=format_slot_label(start_time, timezone_name),
                )
            )
            if len(suggestions) == MAX_SUGGESTIONS:
                break

        LOGGER.info(
            "availability.slots",
            offered=len(available),
            matched=len(suggestions),
            window=None if window is None else (window.start, window.end),
        )
        return SlotSearchResult(
            suggestions=suggestions,
            event_type_uri=event_type_uri,
            summary=FOUND_SUMMARY if suggestions else EMPTY_SUMMARY,
        )


def _duration_minutes(event_type: Dict[str, Any]) -> Optional[int]:
    try:
        duration = int(event_type.get("duration"))
    except (TypeError, ValueError):
        return None
    return duration if duration > 0 else None


def _end_time(start_time: str, duration: Optional[int]) -> Optional[str]:
    if duration is None:
        return None
    try:
        return format_instant(parse_instant(start_time) + timedelta(minutes=duration))
    except TIME_ERRORS:
        return None

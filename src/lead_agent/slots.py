"""Label rendering and hour-window matching for calendar slots."""

from __future__ import annotations

from typing import Optional

import structlog

from .time_window import TimeWindow
from .utils import TIME_ERRORS, get_zone, parse_instant

LOGGER = structlog.get_logger(__name__)


def format_slot_label(instant: str, timezone_name: str) -> str:
    """Render e.g. ``Tue, Mar 3, 9:00 AM (America/Chicago)``.

    Falls back to the raw instant when it or the zone cannot be interpreted.
    """
    try:
        local = parse_instant(instant).astimezone(get_zone(timezone_name))
    except TIME_ERRORS as exc:
        LOGGER.warning("slots.label_failed", instant=instant, timezone=timezone_name, error=str(exc))
        return instant

    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return (
        f"{local:%a}, {local:%b} {local.day}, "
        f"{hour}:{local:%M} {meridiem} ({timezone_name})"
    )


def slot_matches_window(instant: str, timezone_name: str, window: Optional[TimeWindow]) -> bool:
    """Return True when the slot's local hour falls inside ``window``.

    No window matches everything, and slots whose hour cannot be computed are
    kept rather than dropped.
    """
    if window is None:
        return True
    try:
        local = parse_instant(instant).astimezone(get_zone(timezone_name))
    except TIME_ERRORS as exc:
        LOGGER.warning("slots.match_failed", instant=instant, timezone=timezone_name, error=str(exc))
        return True
    return window.contains(local.hour)

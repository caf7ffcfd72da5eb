"""Utility helpers for instants, zones and free text."""

from __future__ import annotations

import re
from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser

# OSError covers zone names that resolve to tzdata directories, e.g. "America".
TIME_ERRORS = (ValueError, OverflowError, TypeError, KeyError, OSError, ZoneInfoNotFoundError)


def get_zone(timezone_name: str) -> ZoneInfo:
    """Return a ZoneInfo instance; raises for unknown names."""
    return ZoneInfo(timezone_name)


def now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


def parse_instant(text: str, default_zone: Optional[tzinfo] = None) -> datetime:
    """Parse an ISO-ish timestamp into an aware datetime.

    Naive values are placed in ``default_zone`` (UTC when not given).
    """
    parsed = date_parser.isoparse(text.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_zone or timezone.utc)
    return parsed


def format_instant(value: datetime) -> str:
    """Render an aware datetime as a UTC ISO string with a ``Z`` suffix."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def normalise_whitespace(text: str) -> str:
    """Collapse repeated whitespace into single spaces."""
    return re.sub(r"\s+", " ", text or "").strip()

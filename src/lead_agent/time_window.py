"""Parsing of the user's preferred meeting hours and timezone."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

DEFAULT_TIMEZONE = "America/Chicago"

TIMEZONE_ALIASES = {
    "est": "America/New_York",
    "edt": "America/New_York",
    "cst": "America/Chicago",
    "cdt": "America/Chicago",
    "mst": "America/Denver",
    "mdt": "America/Denver",
    "pst": "America/Los_Angeles",
    "pdt": "America/Los_Angeles",
}

_RANGE_PATTERN = re.compile(r"(\d{1,2})\s*-\s*(\d{1,2})")


@dataclass(frozen=True)
class TimeWindow:
    """Half-open range of local hours, ``[start, end)``."""

    start: int
    end: int

    def contains(self, hour: int) -> bool:
        return self.start <= hour < self.end


def parse_window(text: Optional[str]) -> Optional[TimeWindow]:
    """
    Parse a free-text hour range such as ``"9-5"`` or ``"09 - 17"``.

    When the end does not come after a morning start, the end is read as an
    afternoon hour (``"9-5"`` becomes 9 to 17). Starts of 12 or later are left
    untouched even if the end is smaller.
    """
    match = _RANGE_PATTERN.search(text or "")
    if not match:
        return None

    start = int(match.group(1))
    end = int(match.group(2))
    if end <= start and start < 12:
        end += 12

    if not 0 <= start <= 23 or not 1 <= end <= 24:
        return None
    return TimeWindow(start=start, end=end)


def normalize_timezone(value: Optional[str], default: str = DEFAULT_TIMEZONE) -> str:
    """Map common US abbreviations to IANA names; other input passes through."""
    cleaned = (value or "").strip()
    if not cleaned:
        return default
    return TIMEZONE_ALIASES.get(cleaned.lower(), cleaned)

"""Tests for hour-window parsing, timezone aliases and slot labels."""

import pytest

from lead_agent.slots import format_slot_label, slot_matches_window
from lead_agent.time_window import TimeWindow, normalize_timezone, parse_window


class TestParseWindow:
    def test_afternoon_end_is_corrected(self):
        assert parse_window("9-5") == TimeWindow(start=9, end=17)

    def test_spaced_24_hour_range(self):
        assert parse_window("09 - 17") == TimeWindow(start=9, end=17)

    def test_afternoon_start_is_left_alone(self):
        assert parse_window("14-16") == TimeWindow(start=14, end=16)

    def test_afternoon_start_skips_correction_even_when_backwards(self):
        assert parse_window("14-10") == TimeWindow(start=14, end=10)

    def test_equal_bounds_in_the_morning(self):
        assert parse_window("11-11") == TimeWindow(start=11, end=23)

    def test_embedded_in_sentence(self):
        assert parse_window("Weekdays, roughly 10 - 2 my time") == TimeWindow(start=10, end=14)

    @pytest.mark.parametrize("text", ["25-30", "no numbers here", "", None, "9 to 5"])
    def test_rejected(self, text):
        assert parse_window(text) is None

    def test_end_of_day(self):
        assert parse_window("18-24") == TimeWindow(start=18, end=24)


class TestNormalizeTimezone:
    def test_abbreviation(self):
        assert normalize_timezone("EST") == "America/New_York"

    def test_case_insensitive(self):
        assert normalize_timezone("pdt") == "America/Los_Angeles"

    def test_empty_uses_default(self):
        assert normalize_timezone("") == "America/Chicago"
        assert normalize_timezone(None) == "America/Chicago"

    def test_passthrough(self):
        assert normalize_timezone("Europe/Paris") == "Europe/Paris"


class TestSlots:
    def test_label_is_localised(self):
        label = format_slot_label("2026-10-26T14:00:00Z", "America/Chicago")
        assert label == "Mon, Oct 26, 9:00 AM (America/Chicago)"

    def test_label_afternoon(self):
        label = format_slot_label("2026-10-26T20:30:00Z", "America/New_York")
        assert label == "Mon, Oct 26, 4:30 PM (America/New_York)"

    def test_label_falls_back_to_raw_instant(self):
        assert format_slot_label("2026-10-26T14:00:00Z", "Not/AZone") == "2026-10-26T14:00:00Z"
        assert format_slot_label("soon", "America/Chicago") == "soon"

    def test_no_window_always_matches(self):
        assert slot_matches_window("garbage", "Not/AZone", None) is True
        assert slot_matches_window("2026-10-26T02:00:00Z", "America/Chicago", None) is True

    def test_window_membership_uses_local_hour(self):
        window = TimeWindow(start=9, end=17)
        assert slot_matches_window("2026-10-26T14:00:00Z", "America/Chicago", window) is True
        assert slot_matches_window("2026-10-26T21:59:00Z", "America/Chicago", window) is True
        assert slot_matches_window("2026-10-26T22:00:00Z", "America/Chicago", window) is False
        assert slot_matches_window("2026-10-26T13:00:00Z", "America/Chicago", window) is False

    def test_unknown_zone_fails_open(self):
        assert slot_matches_window("2026-10-26T03:00:00Z", "Not/AZone", TimeWindow(9, 17)) is True


class TestZoneDirectoryNames:
    """Names like "America" resolve to a tzdata directory rather than a zone."""

    def test_label_falls_back(self):
        assert format_slot_label("2026-10-26T14:00:00Z", "America") == "2026-10-26T14:00:00Z"

    def test_match_fails_open(self):
        assert slot_matches_window("2026-10-26T03:00:00Z", "America", TimeWindow(9, 17)) is True

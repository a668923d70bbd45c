"""Tests for rankbrnd.publishing.timezone."""

from datetime import UTC, datetime, timedelta

import pytest

from rankbrnd.publishing.timezone import (
    format_in_timezone,
    format_relative_time,
    from_utc,
    is_valid_timezone,
    timezone_from_headers,
    to_utc,
)

BASE = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


class TestIsValidTimezone:
    def test_known_zones(self):
        assert is_valid_timezone("UTC")
        assert is_valid_timezone("America/New_York")

    @pytest.mark.parametrize("name", ["", None, "Mars/Olympus_Mons", "not a zone"])
    def test_invalid(self, name):
        assert is_valid_timezone(name) is False


class TestTimezoneFromHeaders:
    def test_explicit_header_wins(self):
        headers = {"X-Timezone": "Europe/Berlin", "Accept-Language": "en-US"}
        assert timezone_from_headers(headers) == "Europe/Berlin"

    def test_invalid_header_falls_back_to_locale(self):
        headers = {"x-timezone": "Nowhere/Land", "accept-language": "en-GB,en;q=0.9"}
        assert timezone_from_headers(headers) == "Europe/London"

    def test_unknown_locale_defaults_to_utc(self):
        assert timezone_from_headers({"Accept-Language": "xx-XX"}) == "UTC"

    def test_no_headers(self):
        assert timezone_from_headers({}) == "UTC"


class TestConversion:
    def test_naive_is_wall_clock_in_zone(self):
        # New York is UTC-4 after the March DST switch
        result = to_utc("2026-03-20T09:00:00", "America/New_York")
        assert result == datetime(2026, 3, 20, 13, 0, tzinfo=UTC)

    def test_z_suffix_ignores_zone(self):
        result = to_utc("2026-03-20T09:00:00Z", "Asia/Tokyo")
        assert result == datetime(2026, 3, 20, 9, 0, tzinfo=UTC)

    def test_explicit_offset(self):
        assert to_utc("2026-03-20T09:00:00+02:00") == datetime(2026, 3, 20, 7, 0, tzinfo=UTC)

    def test_datetime_input(self):
        assert to_utc(datetime(2026, 1, 1, 9, 0), "Europe/London") == datetime(2026, 1, 1, 9, 0, tzinfo=UTC)

    def test_bad_date(self):
        with pytest.raises(ValueError, match="Invalid date"):
            to_utc("next tuesday")

    def test_bad_zone(self):
        with pytest.raises(ValueError, match="Invalid timezone"):
            to_utc("2026-03-20T09:00:00", "Mars/Base")

    def test_from_utc(self):
        local = from_utc("2026-07-01T12:00:00Z", "Europe/Paris")
        assert local.hour == 14
        assert local.utcoffset() == timedelta(hours=2)

    def test_format_in_timezone(self):
        assert format_in_timezone("2026-01-15T23:30:00Z", "Asia/Tokyo") == "2026-01-16 08:30:00"


class TestFormatRelativeTime:
    @pytest.mark.parametrize(
        ("delta", "expected"),
        [
            (timedelta(0), "just now"),
            (timedelta(milliseconds=400), "just now"),
            (timedelta(seconds=45), "in 45s"),
            (timedelta(minutes=5, seconds=59), "in 5m"),
            (timedelta(hours=3), "in 3h"),
            (timedelta(days=2, hours=23), "in 2d"),
            (timedelta(days=65), "in 2mo"),
            (-timedelta(minutes=10), "10m ago"),
            (-timedelta(hours=26), "1d ago"),
        ],
    )
    def test_buckets(self, delta, expected):
        assert format_relative_time(BASE + delta, BASE) == expected

"""
Unit tests for timezone resolution and timestamp parsing.
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest

from cushare.core.timezones import (
    local_timezone_name,
    parse_date_option,
    parse_timestamp,
    resolve_timezone,
)


def _zone_available(name: str) -> bool:
    try:
        ZoneInfo(name)
    except ZoneInfoNotFoundError:
        return False
    return True


new_york_only = pytest.mark.skipif(not _zone_available("America/New_York"), reason="tz database not installed")


class TestResolveTimezone:
    """Test resolving timezone names."""

    def test_utc_aliases(self):
        assert resolve_timezone("UTC") is timezone.utc
        assert resolve_timezone("z") is timezone.utc

    def test_unknown_name(self):
        """Verify an unknown name raises ValueError."""
        with pytest.raises(ValueError, match="Unknown timezone: Not/AZone"):
            resolve_timezone("Not/AZone")

    @new_york_only
    def test_local_zone_follows_dst(self, monkeypatch):
        """The local default is the named zone, so winter and summer offsets differ."""
        monkeypatch.setenv("TZ", "America/New_York")

        tz = resolve_timezone()

        assert local_timezone_name() == "America/New_York"
        assert getattr(tz, "key", None) == "America/New_York"
        assert datetime(2024, 1, 15, 12, 0, tzinfo=tz).utcoffset() == timedelta(hours=-5)
        assert datetime(2024, 7, 15, 12, 0, tzinfo=tz).utcoffset() == timedelta(hours=-4)

    def test_local_utc(self, monkeypatch):
        monkeypatch.setenv("TZ", "UTC")
        assert resolve_timezone() is timezone.utc

    def test_unknown_local_zone_falls_back_to_offset(self, monkeypatch):
        """An unrecognised TZ value still yields a usable tzinfo."""
        monkeypatch.setenv("TZ", "Not/AZone")

        tz = resolve_timezone()

        assert datetime(2024, 1, 15, tzinfo=tz).utcoffset() is not None


class TestParseDateOption:
    """Test --since/--until parsing."""

    def test_bare_date_is_local_midnight(self):
        assert parse_date_option("2024-01-15", timezone.utc) == datetime(2024, 1, 15, tzinfo=timezone.utc)

    @new_york_only
    def test_bare_date_uses_dst_of_that_date(self, monkeypatch):
        """Midnight is taken with the offset in force on that day."""
        monkeypatch.setenv("TZ", "America/New_York")

        assert parse_date_option("2024-01-15") == datetime(2024, 1, 15, 5, 0, tzinfo=timezone.utc)
        assert parse_date_option("2024-07-15") == datetime(2024, 7, 15, 4, 0, tzinfo=timezone.utc)

    def test_offset_is_kept(self):
        assert parse_date_option("2024-01-15T10:00:00+02:00") == datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc)

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid date format"):
            parse_date_option("yesterday", timezone.utc)


class TestParseTimestamp:
    """Test log timestamp parsing."""

    def test_naive_is_utc(self):
        assert parse_timestamp("2024-01-15T10:00:00") == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, True, "", "not a date", float("nan")])
    def test_unparseable(self, value):
        assert parse_timestamp(value) is None

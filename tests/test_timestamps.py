"""Tests for timestamp helpers."""

from datetime import datetime, timedelta, timezone

from cc2md.timestamps import (
    UNKNOWN_TIME,
    clean_summary,
    format_relative_time,
    format_timestamp,
    is_unknown,
    is_valid_timestamp,
    parse_timestamp,
    truncate,
)


class TestValidity:

    def test_iso_timestamps_are_valid(self):
        assert is_valid_timestamp("2025-01-01T10:00:00.000Z")
        assert is_valid_timestamp("2025-01-01")

    def test_unix_times_are_valid(self):
        assert is_valid_timestamp("1700000000")
        assert is_valid_timestamp("1700000000000")

    def test_uuid_is_not_a_timestamp(self):
        assert not is_valid_timestamp("550e8400-e29b-41d4-a716-446655440000")

    def test_garbage_and_empty(self):
        assert not is_valid_timestamp("not a time")
        assert not is_valid_timestamp("")
        assert not is_valid_timestamp(None)


class TestParsing:

    def test_parse_iso_with_z(self):
        ts = parse_timestamp("2025-01-01T10:00:00Z")
        assert ts == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)

    def test_naive_is_treated_as_utc(self):
        assert parse_timestamp("2025-01-01T10:00:00").tzinfo is not None

    def test_parse_unix_millis(self):
        assert parse_timestamp("1700000000000") == datetime.fromtimestamp(1700000000, tz=timezone.utc)

    def test_unparseable_is_unknown(self):
        ts = parse_timestamp("yesterday-ish")
        assert ts is UNKNOWN_TIME
        assert is_unknown(ts)

    def test_real_epoch_is_not_unknown(self):
        assert not is_unknown(parse_timestamp("1970-01-01T00:00:00Z"))


class TestDisplay:

    def test_clean_summary(self):
        assert clean_summary("  Fix   the\nbug...  ") == "Fix the bug"

    def test_truncate(self):
        assert truncate("abcdefghij", 6) == "abc..."
        assert truncate("abc", 6) == "abc"

    def test_format_relative_time(self):
        now = datetime(2025, 1, 10, tzinfo=timezone.utc)
        assert format_relative_time(now - timedelta(seconds=5), now) == "5 seconds ago"
        assert format_relative_time(now - timedelta(minutes=1), now) == "1 minute ago"
        assert format_relative_time(now - timedelta(hours=3), now) == "3 hours ago"
        assert format_relative_time(now - timedelta(days=2), now) == "2 days ago"
        assert format_relative_time(now - timedelta(days=14), now) == "2 weeks ago"
        assert format_relative_time(now - timedelta(days=60), now) == "2 months ago"

    def test_unknown_display(self):
        assert format_timestamp("bogus") == "Unknown"
        assert format_timestamp(None) == "Unknown"

    def test_format_timestamp_keeps_seconds(self):
        assert format_timestamp("2025-01-01T10:00:00Z").endswith(":00")

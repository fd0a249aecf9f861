"""Tests for clock and calendar helpers."""

from datetime import date, datetime, timedelta, timezone

import pytest

from readtrack.dates import (
    DateRange,
    calendar_date,
    is_calendar_date,
    local_hour,
    now_ms,
    parse_calendar_date,
)
from readtrack.errors import InvalidInputError

LATE_EVENING_UTC = int(datetime(2025, 1, 15, 23, 30, tzinfo=timezone.utc).timestamp() * 1000)


class TestCalendarDate:
    """Tests for deriving calendar dates from timestamps."""

    def test_utc(self):
        """Test date derivation in UTC."""
        assert calendar_date(LATE_EVENING_UTC, timezone.utc) == "2025-01-15"

    def test_timezone_shifts_date(self):
        """Test that a timezone east of UTC moves the date forward."""
        tokyo = timezone(timedelta(hours=9))
        assert calendar_date(LATE_EVENING_UTC, tokyo) == "2025-01-16"
        assert local_hour(LATE_EVENING_UTC, tokyo) == 8

    def test_local_timezone_default(self):
        """Test that no timezone falls back to host local time."""
        expected = datetime.fromtimestamp(LATE_EVENING_UTC / 1000).date().isoformat()
        assert calendar_date(LATE_EVENING_UTC) == expected

    def test_now_ms_is_epoch_milliseconds(self):
        """Test now_ms is close to the current time."""
        assert abs(now_ms() - datetime.now(timezone.utc).timestamp() * 1000) < 5_000


class TestParseCalendarDate:
    """Tests for ISO date validation."""

    def test_valid_string(self):
        assert parse_calendar_date("2025-02-28") == date(2025, 2, 28)

    def test_date_passthrough(self):
        assert parse_calendar_date(date(2025, 2, 28)) == date(2025, 2, 28)

    @pytest.mark.parametrize(
        "value",
        ["2025-1-5", "2025-02-30", "20250115", "2025-01-15T10:00", "", "yesterday"],
    )
    def test_invalid_strings(self, value):
        """Test malformed or impossible dates are rejected."""
        assert not is_calendar_date(value)
        with pytest.raises(InvalidInputError):
            parse_calendar_date(value)

    def test_invalid_input_is_value_error(self):
        """Test callers can catch InvalidInputError as ValueError."""
        with pytest.raises(ValueError):
            parse_calendar_date("2025-13-01")


class TestDateRange:
    """Tests for DateRange."""

    def test_of_strings(self):
        window = DateRange.of("2025-01-01", "2025-01-07")
        assert window.start == date(2025, 1, 1)
        assert window.end_iso == "2025-01-07"
        assert len(window) == 7

    def test_single_day(self):
        window = DateRange.of("2025-01-01", "2025-01-01")
        assert list(window.days()) == [date(2025, 1, 1)]

    def test_reversed_range_rejected(self):
        with pytest.raises(InvalidInputError, match="after end"):
            DateRange.of("2025-01-07", "2025-01-01")

    def test_trailing_window(self):
        """Test [today - days, today] is inclusive on both ends."""
        window = DateRange.trailing(7, date(2025, 1, 15))
        assert window.start_iso == "2025-01-08"
        assert window.end_iso == "2025-01-15"
        assert len(window) == 8

    def test_trailing_negative_rejected(self):
        with pytest.raises(InvalidInputError):
            DateRange.trailing(-1, date(2025, 1, 15))

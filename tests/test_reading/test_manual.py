"""Tests for manual reading records."""

import math

import pytest

from readtrack.db.schemas import RecordType
from readtrack.errors import InvalidInputError

MINUTE = 60_000


class TestAddManualRecord:
    """Tests for ManualEntryValidator.add_manual_record."""

    def test_add_record(self, manual, db, book, clock):
        record_id = manual.add_manual_record("42", 0.0, 12.0, 30 * MINUTE, "2025-01-12")

        record = db.get_reading_session(record_id)
        assert record.record_type == RecordType.MANUAL
        assert record.date == "2025-01-12"
        assert record.duration == 30 * MINUTE
        assert record.end_time == clock.now
        assert record.start_time == clock.now - 30 * MINUTE
        assert record.start_progress == 0.0
        assert record.end_progress == 12.0

    def test_record_is_never_active(self, manual, manager, db, book):
        manual.add_manual_record("42", 0.0, 12.0, MINUTE, "2025-01-15")
        assert db.get_active_session() is None

    def test_allowed_while_timed_session_open(self, manual, manager, db, book):
        """Test manual records do not compete for the active slot."""
        session_id = manager.start_session("42", 12.0)

        manual.add_manual_record("42", 0.0, 12.0, 20 * MINUTE, "2025-01-14")

        assert manager.get_active_session().id == session_id
        assert db.count_sessions() == 2

    def test_zero_duration(self, manual, db, book):
        record_id = manual.add_manual_record("42", 5.0, 5.0, 0, "2025-01-15")
        assert db.get_reading_session(record_id).duration == 0

    def test_notes(self, manual, db, book):
        record_id = manual.add_manual_record(
            "42", 0.0, 5.0, MINUTE, "2025-01-15", notes="On the train"
        )
        assert db.get_reading_session(record_id).notes == "On the train"

    def test_negative_duration_rejected(self, manual, db, book):
        with pytest.raises(InvalidInputError):
            manual.add_manual_record("42", 0.0, 5.0, -1, "2025-01-15")
        assert db.count_sessions() == 0

    @pytest.mark.parametrize("day", ["2025-1-12", "2025-02-30", "yesterday", ""])
    def test_malformed_date_rejected(self, manual, db, book, day):
        with pytest.raises(InvalidInputError):
            manual.add_manual_record("42", 0.0, 5.0, MINUTE, day)
        assert db.count_sessions() == 0

    def test_non_finite_progress_rejected(self, manual, book):
        with pytest.raises(InvalidInputError):
            manual.add_manual_record("42", math.nan, 5.0, MINUTE, "2025-01-15")

    def test_duration_before_epoch_rejected(self, manual, book, clock):
        with pytest.raises(InvalidInputError, match="epoch"):
            manual.add_manual_record("42", 0.0, 5.0, clock.now + 1, "2025-01-15")

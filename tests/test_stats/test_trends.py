"""Tests for trend bucketing."""

from datetime import date, timedelta, timezone

import pytest

from readtrack.db.schemas import RecordType
from readtrack.errors import InvalidInputError
from readtrack.stats import Granularity, TrendBucketer, TrendMetric
from readtrack.stats.trends import bucket_label, bucket_start, next_bucket

MINUTE = 60_000
HOUR = 60 * MINUTE


class TestBucketHelpers:
    """Tests for calendar bucket arithmetic."""

    def test_week_starts_on_monday(self):
        assert bucket_start(date(2025, 1, 15), Granularity.WEEK) == date(2025, 1, 13)
        assert bucket_start(date(2025, 1, 13), Granularity.WEEK) == date(2025, 1, 13)

    def test_month_rollover(self):
        assert next_bucket(date(2024, 12, 1), Granularity.MONTH) == date(2025, 1, 1)
        assert next_bucket(date(2025, 1, 1), Granularity.MONTH) == date(2025, 2, 1)

    def test_labels(self):
        assert bucket_label(date(2025, 1, 15), Granularity.DAY) == "2025-01-15"
        assert bucket_label(date(2024, 12, 30), Granularity.WEEK) == "2025-W01"
        assert bucket_label(date(2025, 2, 1), Granularity.MONTH) == "2025-02"


class TestBucketSessions:
    """Tests for TrendBucketer.bucket_sessions."""

    def test_daily_series_is_dense(self, bucketer, book, make_session):
        make_session("42", "2025-01-10", minutes=10)
        make_session("42", "2025-01-15", minutes=20)
        make_session("42", "2025-01-15", minutes=5)

        points = bucketer.bucket_sessions("2025-01-09", "2025-01-15")

        assert len(points) == 7
        assert [p.label for p in points][0] == "2025-01-09"
        assert [p.label for p in points][-1] == "2025-01-15"
        assert sum(1 for p in points if p.value == 0) == 5
        assert points[1].value == 10 * MINUTE
        assert points[-1].value == 25 * MINUTE

    def test_series_total_matches_sessions(self, bucketer, book, make_session):
        make_session("42", "2025-01-10", minutes=10)
        make_session("42", "2025-01-20", minutes=10)

        points = bucketer.bucket_sessions("2025-01-01", "2025-01-31", Granularity.WEEK)

        assert sum(p.value for p in points) == 20 * MINUTE

    def test_weekly_buckets(self, bucketer, book, make_session):
        make_session("42", "2025-01-01", minutes=10)
        make_session("42", "2025-01-05", minutes=10)
        make_session("42", "2025-01-20", minutes=15)

        points = bucketer.bucket_sessions("2025-01-01", "2025-01-20", Granularity.WEEK)

        assert [p.label for p in points] == ["2025-W01", "2025-W02", "2025-W03", "2025-W04"]
        assert points[0].start_date == "2024-12-30"
        assert [p.value for p in points] == [20 * MINUTE, 0, 0, 15 * MINUTE]

    def test_monthly_buckets(self, bucketer, book, make_session):
        make_session("42", "2024-12-24", minutes=30)

        points = bucketer.bucket_sessions("2024-11-15", "2025-02-03", Granularity.MONTH)

        assert [p.label for p in points] == ["2024-11", "2024-12", "2025-01", "2025-02"]
        assert [p.value for p in points] == [0, 30 * MINUTE, 0, 0]

    def test_count_metric(self, bucketer, book, make_session):
        for _ in range(3):
            make_session("42", "2025-01-14", minutes=10)

        points = bucketer.bucket_sessions(
            "2025-01-14", "2025-01-15", Granularity.DAY, TrendMetric.COUNT
        )

        assert [p.value for p in points] == [3, 0]

    def test_accepts_string_enum_values(self, bucketer):
        points = bucketer.bucket_sessions("2025-01-01", "2025-03-31", "month", "count")
        assert len(points) == 3

    def test_repeatable(self, bucketer, book, make_session):
        """Test the same query twice gives the same series."""
        make_session("42", "2025-01-12", minutes=10)
        first = bucketer.bucket_sessions("2025-01-01", "2025-01-31", Granularity.WEEK)
        second = bucketer.bucket_sessions("2025-01-01", "2025-01-31", Granularity.WEEK)
        assert first == second

    def test_single_day_range(self, bucketer):
        points = bucketer.bucket_sessions("2025-01-15", "2025-01-15")
        assert len(points) == 1
        assert points[0].value == 0

    def test_reversed_range_rejected(self, bucketer):
        with pytest.raises(InvalidInputError):
            bucketer.bucket_sessions("2025-01-15", "2025-01-01")


class TestDistributions:
    """Tests for hour-of-day and weekday distributions."""

    def test_hourly_distribution(self, bucketer, book, make_session, clock):
        for offset in (0, 5 * MINUTE, 3 * HOUR):
            make_session(
                "42", "2025-01-15", start_time=clock.now + offset, record_type=RecordType.PRECISE
            )

        points = bucketer.hourly_distribution("2025-01-15", "2025-01-15")

        assert len(points) == 24
        assert points[10].label == "10:00"
        assert points[10].value == 2
        assert points[13].value == 1
        assert sum(p.value for p in points) == 3

    def test_hourly_distribution_local_time(self, db, book, make_session, clock):
        make_session("42", "2025-01-15", start_time=clock.now, record_type=RecordType.PRECISE)
        bucketer = TrendBucketer(db=db, tz=timezone(timedelta(hours=2)))

        points = bucketer.hourly_distribution("2025-01-15", "2025-01-15")

        assert points[12].value == 1

    def test_hourly_distribution_skips_manual_records(self, bucketer, book, make_session, clock):
        """Test manual records, whose timestamps are entry times, are not bucketed by hour."""
        make_session("42", "2025-01-15", start_time=clock.now, record_type=RecordType.PRECISE)
        make_session("42", "2025-01-15", start_time=clock.now, record_type=RecordType.MANUAL)

        points = bucketer.hourly_distribution("2025-01-15", "2025-01-15")

        assert sum(p.value for p in points) == 1

    def test_weekday_distribution(self, bucketer, book, make_session):
        make_session("42", "2025-01-13", minutes=10)  # Monday
        make_session("42", "2025-01-15", minutes=20)  # Wednesday
        make_session("42", "2025-01-20", minutes=5)  # Monday

        points = bucketer.weekday_distribution("2025-01-13", "2025-01-20")

        assert len(points) == 7
        assert points[0].index == 0
        assert points[0].value == 15 * MINUTE
        assert points[2].value == 20 * MINUTE
        assert points[6].value == 0

    def test_weekday_labels(self, bucketer):
        points = bucketer.weekday_distribution("2025-01-13", "2025-01-19")
        assert [p.label for p in points] == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

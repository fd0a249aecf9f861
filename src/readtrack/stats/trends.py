"""Calendar-bucketed reading trends for charts.

Every series is dense: each calendar unit in the requested range gets exactly
one point, zero when nothing was read, in chronological order. Weeks are ISO
weeks starting on Monday; months are calendar months.
"""

from dataclasses import dataclass
from datetime import date, timedelta, tzinfo
from enum import Enum
from typing import Callable, Iterable, Optional

from ..config import get_config
from ..dates import DateLike, DateRange, local_hour
from ..db.schemas import ReadingSessionResponse, RecordType
from ..db.sqlite import get_db
from ..db.store import SessionStore

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


class Granularity(str, Enum):
    """Size of a trend bucket."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class TrendMetric(str, Enum):
    """What a bucket value measures."""

    DURATION = "duration"  # Sum of session durations in ms
    COUNT = "count"  # Number of sessions


@dataclass(frozen=True)
class TrendPoint:
    """One bucket of a trend series."""

    label: str
    start_date: str  # First calendar day of the bucket
    value: int


@dataclass(frozen=True)
class DistributionPoint:
    """One bucket of a cyclic distribution (hour of day, day of week)."""

    index: int
    label: str
    value: int


def bucket_start(day: date, granularity: Granularity) -> date:
    """First calendar day of the bucket containing ``day``."""
    if granularity == Granularity.DAY:
        return day
    if granularity == Granularity.WEEK:
        return day - timedelta(days=day.weekday())
    return day.replace(day=1)


def next_bucket(start: date, granularity: Granularity) -> date:
    """First calendar day of the bucket following the one starting at ``start``."""
    if granularity == Granularity.DAY:
        return start + timedelta(days=1)
    if granularity == Granularity.WEEK:
        return start + timedelta(weeks=1)
    if start.month == 12:
        return date(start.year + 1, 1, 1)
    return date(start.year, start.month + 1, 1)


def bucket_label(start: date, granularity: Granularity) -> str:
    """Display label of a bucket: ``YYYY-MM-DD``, ``YYYY-Www`` or ``YYYY-MM``."""
    if granularity == Granularity.DAY:
        return start.isoformat()
    if granularity == Granularity.WEEK:
        iso_year, iso_week, _ = start.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    return f"{start.year}-{start.month:02d}"


def _measure(metric: TrendMetric) -> Callable[[ReadingSessionResponse], int]:
    if metric == TrendMetric.COUNT:
        return lambda s: 1
    return lambda s: s.duration


class TrendBucketer:
    """Buckets reading sessions into chart-ready series."""

    def __init__(self, db: Optional[SessionStore] = None, tz: Optional[tzinfo] = None):
        """Initialize the bucketer.

        Args:
            db: Session store
            tz: Timezone for hour-of-day buckets (default: configured timezone)
        """
        self.db = db or get_db()
        self.tz = tz if tz is not None else get_config().tzinfo()

    def _sessions(self, window: DateRange) -> list[ReadingSessionResponse]:
        return self.db.get_sessions_by_date_range(window.start_iso, window.end_iso)

    def bucket_sessions(
        self,
        start: DateLike,
        end: DateLike,
        granularity: Granularity = Granularity.DAY,
        metric: TrendMetric = TrendMetric.DURATION,
    ) -> list[TrendPoint]:
        """Aggregate sessions dated in ``[start, end]`` per calendar unit.

        Args:
            start: First day of the range (inclusive)
            end: Last day of the range (inclusive)
            granularity: Day, ISO week or calendar month buckets
            metric: Sum durations or count sessions

        Returns:
            One TrendPoint per calendar unit intersecting the range, oldest
            first, zero-filled
        """
        window = DateRange.of(start, end)
        granularity = Granularity(granularity)
        measure = _measure(TrendMetric(metric))

        totals: dict[date, int] = {}
        cursor = bucket_start(window.start, granularity)
        while cursor <= window.end:
            totals[cursor] = 0
            cursor = next_bucket(cursor, granularity)

        for s in self._sessions(window):
            key = bucket_start(date.fromisoformat(s.date), granularity)
            totals[key] += measure(s)

        return [
            TrendPoint(
                label=bucket_label(key, granularity),
                start_date=key.isoformat(),
                value=value,
            )
            for key, value in totals.items()
        ]

    def hourly_distribution(
        self,
        start: DateLike,
        end: DateLike,
        metric: TrendMetric = TrendMetric.COUNT,
    ) -> list[DistributionPoint]:
        """Timed sessions in the range split by the local hour they started (0-23).

        Manual records are left out: their timestamps are synthesized at entry
        time and say nothing about when the reading happened.
        """
        window = DateRange.of(start, end)
        measure = _measure(TrendMetric(metric))

        values = [0] * 24
        for s in self._sessions(window):
            if s.record_type == RecordType.MANUAL:
                continue
            values[local_hour(s.start_time, self.tz)] += measure(s)

        return _points(values, (f"{hour:02d}:00" for hour in range(24)))

    def weekday_distribution(
        self,
        start: DateLike,
        end: DateLike,
        metric: TrendMetric = TrendMetric.DURATION,
    ) -> list[DistributionPoint]:
        """Sessions in the range split by the weekday of their date, Monday first."""
        window = DateRange.of(start, end)
        measure = _measure(TrendMetric(metric))

        values = [0] * 7
        for s in self._sessions(window):
            values[date.fromisoformat(s.date).weekday()] += measure(s)

        return _points(values, WEEKDAY_LABELS)


def _points(values: list[int], labels: Iterable[str]) -> list[DistributionPoint]:
    return [
        DistributionPoint(index=i, label=label, value=value)
        for i, (label, value) in enumerate(zip(labels, values))
    ]

"""Reading statistics over the session log.

Every figure is recomputed from the store on each call. Aggregates over no
matching sessions return their identity value: 0 for sums, counts and
averages, None only for the last-read timestamp.

Provides:
- Duration totals by book, day, date range and rolling window
- Session and reading-day counts
- Per-book summaries and the statistics overview
- Reading streaks and the duration percentile distribution
"""

from dataclasses import dataclass, field
from datetime import date, timedelta, tzinfo
from typing import Optional

from ..config import get_config
from ..dates import Clock, DateLike, DateRange, calendar_date, now_ms, parse_calendar_date
from ..db.sqlite import get_db
from ..db.store import SessionStore

MINUTE_MS = 60_000

# Rolling windows for the overview, in days before today
TODAY_WINDOW = 0
WEEK_WINDOW = 7
MONTH_WINDOW = 30


@dataclass
class BookReadingStatistics:
    """Reading statistics for a single book."""

    book_id: str
    total_duration: int = 0  # ms
    record_count: int = 0
    average_duration: int = 0  # ms
    last_read: Optional[int] = None  # epoch ms
    latest_progress: Optional[float] = None


@dataclass
class ReadingOverview:
    """Headline reading figures."""

    today: int = 0  # ms
    week: int = 0
    month: int = 0
    total: int = 0
    reading_days: int = 0  # distinct days read in the last month window
    current_streak: int = 0


@dataclass
class DurationBand:
    """A band of the session duration distribution."""

    label: str
    lower: Optional[int] = None  # ms, inclusive
    upper: Optional[int] = None  # ms, exclusive
    count: int = 0


@dataclass
class DurationDistribution:
    """Session durations split at the 25th, 50th and 75th percentiles."""

    bands: list[DurationBand] = field(default_factory=list)
    sample_size: int = 0


def _iso(value: DateLike) -> str:
    return parse_calendar_date(value).isoformat()


class StatisticsAggregator:
    """Calculates reading statistics from the session store."""

    def __init__(
        self,
        db: Optional[SessionStore] = None,
        clock: Optional[Clock] = None,
        tz: Optional[tzinfo] = None,
    ):
        """Initialize the aggregator.

        Args:
            db: Session store
            clock: Callable returning the current epoch milliseconds
            tz: Timezone that defines "today" (default: configured timezone)
        """
        self.db = db or get_db()
        self.clock = clock or now_ms
        self.tz = tz if tz is not None else get_config().tzinfo()

    def today(self) -> date:
        """Current calendar date in the configured timezone."""
        return date.fromisoformat(calendar_date(self.clock(), self.tz))

    # -------------------------------------------------------------------------
    # Durations
    # -------------------------------------------------------------------------

    def total_duration_for_book(self, book_id: str) -> int:
        """Total reading time of a book in milliseconds."""
        return self.db.sum_duration(book_id=book_id) or 0

    def total_duration_for_date(self, day: DateLike) -> int:
        """Total reading time bucketed on one calendar date."""
        iso = _iso(day)
        return self.db.sum_duration(start_date=iso, end_date=iso) or 0

    def total_duration_for_range(self, start: DateLike, end: DateLike) -> int:
        """Total reading time with bucket dates in ``[start, end]``."""
        window = DateRange.of(start, end)
        return self.db.sum_duration(start_date=window.start_iso, end_date=window.end_iso) or 0

    def total_duration(self) -> int:
        """All-time reading time."""
        return self.db.sum_duration() or 0

    def rolling_window(self, days: int) -> int:
        """Reading time over ``[today - days, today]``, both ends inclusive."""
        window = DateRange.trailing(days, self.today())
        return self.db.sum_duration(start_date=window.start_iso, end_date=window.end_iso) or 0

    def today_total(self) -> int:
        return self.rolling_window(TODAY_WINDOW)

    def week_total(self) -> int:
        return self.rolling_window(WEEK_WINDOW)

    def month_total(self) -> int:
        return self.rolling_window(MONTH_WINDOW)

    # -------------------------------------------------------------------------
    # Counts
    # -------------------------------------------------------------------------

    def session_count_for_date(self, day: DateLike) -> int:
        """Number of sessions bucketed on a date."""
        iso = _iso(day)
        return self.db.count_sessions(start_date=iso, end_date=iso)

    def record_count_for_book(self, book_id: str) -> int:
        """Number of sessions recorded for a book."""
        return self.db.count_sessions(book_id=book_id)

    def distinct_reading_days(self, start: DateLike, end: DateLike) -> int:
        """Number of distinct dates with at least one session in the range."""
        window = DateRange.of(start, end)
        return self.db.count_reading_days(window.start_iso, window.end_iso)

    def book_ids_in_range(self, start: DateLike, end: DateLike) -> list[str]:
        """Books read at least once in the range."""
        window = DateRange.of(start, end)
        return self.db.distinct_book_ids(window.start_iso, window.end_iso)

    # -------------------------------------------------------------------------
    # Per-book figures
    # -------------------------------------------------------------------------

    def average_duration(self, book_id: str) -> int:
        """Mean session duration of a book in milliseconds, 0 without sessions."""
        avg = self.db.average_duration(book_id)
        return int(avg) if avg is not None else 0

    def last_read_timestamp(self, book_id: str) -> Optional[int]:
        """Latest session start time of a book, None without sessions."""
        return self.db.last_start_time(book_id)

    def book_statistics(self, book_id: str) -> BookReadingStatistics:
        """Summary of a book's reading sessions."""
        sessions = self.db.get_sessions_for_book(book_id)
        if not sessions:
            return BookReadingStatistics(book_id=book_id)

        total = sum(s.duration for s in sessions)
        latest = max(sessions, key=lambda s: s.start_time)
        return BookReadingStatistics(
            book_id=book_id,
            total_duration=total,
            record_count=len(sessions),
            average_duration=int(total / len(sessions)),
            last_read=latest.start_time,
            latest_progress=latest.end_progress,
        )

    # -------------------------------------------------------------------------
    # Streaks
    # -------------------------------------------------------------------------

    def current_streak(self) -> int:
        """Consecutive reading days up to today.

        A streak that reached yesterday still counts while nothing has been
        read today yet.
        """
        today = self.today()
        read_days = set(self.db.get_reading_dates(end_date=today.isoformat()))

        cursor = today
        if cursor.isoformat() not in read_days:
            cursor -= timedelta(days=1)

        streak = 0
        while cursor.isoformat() in read_days:
            streak += 1
            cursor -= timedelta(days=1)
        return streak

    def longest_streak(self, start: DateLike, end: DateLike) -> int:
        """Longest run of consecutive reading days within the range."""
        window = DateRange.of(start, end)
        dates = [
            date.fromisoformat(d)
            for d in self.db.get_reading_dates(window.start_iso, window.end_iso)
        ]

        longest = 0
        run = 0
        previous: Optional[date] = None
        for day in dates:
            if previous is not None and day - previous == timedelta(days=1):
                run += 1
            else:
                run = 1
            longest = max(longest, run)
            previous = day
        return longest

    # -------------------------------------------------------------------------
    # Overview and distributions
    # -------------------------------------------------------------------------

    def overview(self) -> ReadingOverview:
        """Headline figures for the statistics overview."""
        month_window = DateRange.trailing(MONTH_WINDOW, self.today())
        return ReadingOverview(
            today=self.today_total(),
            week=self.week_total(),
            month=self.month_total(),
            total=self.total_duration(),
            reading_days=self.db.count_reading_days(
                month_window.start_iso, month_window.end_iso
            ),
            current_streak=self.current_streak(),
        )

    def duration_distribution(self, start: DateLike, end: DateLike) -> DurationDistribution:
        """Split closed session durations into quartile bands.

        Band edges are the 25th, 50th and 75th percentile durations of the
        sessions in range, so the bands follow the reader's own habits.
        """
        window = DateRange.of(start, end)
        durations = sorted(
            s.duration
            for s in self.db.get_sessions_by_date_range(window.start_iso, window.end_iso)
            if s.end_time is not None
        )
        if not durations:
            return DurationDistribution()

        size = len(durations)

        def percentile(p: float) -> int:
            return durations[min(max(int(size * p), 0), size - 1)]

        p25, p50, p75 = percentile(0.25), percentile(0.50), percentile(0.75)
        bands = [
            DurationBand(label=f"short (<{p25 // MINUTE_MS} min)", upper=p25),
            DurationBand(
                label=f"medium ({p25 // MINUTE_MS}-{p50 // MINUTE_MS} min)", lower=p25, upper=p50
            ),
            DurationBand(
                label=f"long ({p50 // MINUTE_MS}-{p75 // MINUTE_MS} min)", lower=p50, upper=p75
            ),
            DurationBand(label=f"deep (>{p75 // MINUTE_MS} min)", lower=p75),
        ]

        for duration in durations:
            if duration < p25:
                bands[0].count += 1
            elif duration < p50:
                bands[1].count += 1
            elif duration < p75:
                bands[2].count += 1
            else:
                bands[3].count += 1

        return DurationDistribution(bands=bands, sample_size=size)

"""Clock and calendar helpers.

Timestamps are epoch milliseconds, calendar dates are ``YYYY-MM-DD`` strings.
A ``tz`` of None means the host's local timezone.
"""

import re
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Callable, Iterator, Optional, Union

from .errors import InvalidInputError

Clock = Callable[[], int]
DateLike = Union[str, date]

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def to_datetime(timestamp_ms: int, tz: Optional[tzinfo] = None) -> datetime:
    """Convert epoch milliseconds to a datetime in ``tz`` (local when None)."""
    if tz is None:
        return datetime.fromtimestamp(timestamp_ms / 1000).astimezone()
    return datetime.fromtimestamp(timestamp_ms / 1000, tz)


def calendar_date(timestamp_ms: int, tz: Optional[tzinfo] = None) -> str:
    """Calendar date (``YYYY-MM-DD``) of a timestamp in ``tz``."""
    return to_datetime(timestamp_ms, tz).date().isoformat()


def local_hour(timestamp_ms: int, tz: Optional[tzinfo] = None) -> int:
    """Hour of day (0-23) of a timestamp in ``tz``."""
    return to_datetime(timestamp_ms, tz).hour


def is_calendar_date(value: str) -> bool:
    """Check that a string is a well-formed, existing ``YYYY-MM-DD`` date."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def parse_calendar_date(value: DateLike) -> date:
    """Parse an ISO calendar date.

    Args:
        value: ``YYYY-MM-DD`` string or a ``date``

    Raises:
        InvalidInputError: If the value is not a valid calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not is_calendar_date(value):
        raise InvalidInputError(f"Invalid calendar date: {value!r} (expected YYYY-MM-DD)")
    return date.fromisoformat(value)


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidInputError(
                f"Date range start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    @classmethod
    def of(cls, start: DateLike, end: DateLike) -> "DateRange":
        """Build a range from ISO strings or dates."""
        return cls(parse_calendar_date(start), parse_calendar_date(end))

    @classmethod
    def trailing(cls, days: int, today: date) -> "DateRange":
        """Range ``[today - days, today]``."""
        if days < 0:
            raise InvalidInputError(f"Window length must be non-negative, got {days}")
        return cls(today - timedelta(days=days), today)

    @property
    def start_iso(self) -> str:
        return self.start.isoformat()

    @property
    def end_iso(self) -> str:
        return self.end.isoformat()

    def days(self) -> Iterator[date]:
        """Iterate over every day in the range."""
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def __len__(self) -> int:
        return (self.end - self.start).days + 1

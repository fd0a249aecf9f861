"""Pytest configuration and shared fixtures.

This module provides fixtures for testing readtrack: a temporary SQLite
database per test, a controllable clock and helpers to seed reading sessions.
"""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Generator, Optional

import pytest

from readtrack.config import reset_config
from readtrack.db.schemas import (
    BookCreate,
    BookResponse,
    ReadingSessionCreate,
    ReadingSessionResponse,
    RecordType,
)
from readtrack.db.sqlite import Database, reset_db
from readtrack.reading import ManualEntryValidator, SessionManager, reset_session_manager
from readtrack.stats import StatisticsAggregator, TrendBucketer

# Wednesday 2025-01-15 10:00:00 UTC
NOW = datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc)
NOW_MS = int(NOW.timestamp() * 1000)
MINUTE = 60_000


class FakeClock:
    """Deterministic epoch-millisecond clock."""

    def __init__(self, start_ms: int = NOW_MS):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    # Cleanup
    if db_path.exists():
        db_path.unlink()


@pytest.fixture(scope="function")
def db(temp_db_path: Path) -> Generator[Database, None, None]:
    """Create a test database instance."""
    # Reset any global state
    reset_db()
    reset_config()
    reset_session_manager()

    # Set environment variable for test database
    os.environ["READTRACK_DB_PATH"] = str(temp_db_path)

    database = Database(str(temp_db_path), timeout=5.0)
    database.create_tables()
    yield database

    # Cleanup
    reset_db()
    reset_session_manager()
    database.engine.dispose()
    if "READTRACK_DB_PATH" in os.environ:
        del os.environ["READTRACK_DB_PATH"]


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at 2025-01-15 10:00 UTC."""
    return FakeClock()


@pytest.fixture
def book(db: Database) -> BookResponse:
    """Create and return the book sessions are recorded against."""
    return db.create_book(BookCreate(id="42", title="The Name of the Wind", author="Patrick Rothfuss"))


@pytest.fixture
def other_book(db: Database) -> BookResponse:
    """A second book."""
    return db.create_book(BookCreate(id="7", title="Piranesi", author="Susanna Clarke"))


# ============================================================================
# Component Fixtures
# ============================================================================


@pytest.fixture
def manager(db: Database, clock: FakeClock) -> SessionManager:
    """Session manager on the test database, UTC calendar."""
    return SessionManager(db=db, clock=clock, tz=timezone.utc)


@pytest.fixture
def manual(db: Database, clock: FakeClock) -> ManualEntryValidator:
    """Manual record entry on the test database."""
    return ManualEntryValidator(db=db, clock=clock)


@pytest.fixture
def aggregator(db: Database, clock: FakeClock) -> StatisticsAggregator:
    """Statistics aggregator on the test database, UTC calendar."""
    return StatisticsAggregator(db=db, clock=clock, tz=timezone.utc)


@pytest.fixture
def bucketer(db: Database) -> TrendBucketer:
    """Trend bucketer on the test database, UTC calendar."""
    return TrendBucketer(db=db, tz=timezone.utc)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def make_session(db: Database) -> Callable[..., ReadingSessionResponse]:
    """Insert a closed session dated on ``day`` lasting ``minutes``."""

    def _make(
        book_id: str,
        day: str,
        minutes: float = 30,
        start_time: int = NOW_MS - 3_600_000,
        start_progress: float = 0.0,
        end_progress: float = 10.0,
        record_type: RecordType = RecordType.MANUAL,
        notes: Optional[str] = None,
    ) -> ReadingSessionResponse:
        duration = int(minutes * MINUTE)
        return db.create_reading_session(
            ReadingSessionCreate(
                book_id=book_id,
                start_time=start_time,
                end_time=start_time + duration,
                duration=duration,
                start_progress=start_progress,
                end_progress=end_progress,
                record_type=record_type,
                date=day,
                notes=notes,
            )
        )

    return _make

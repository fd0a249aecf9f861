"""SQLite database operations.

Handles database connection, session management, and the reading session
store operations.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, delete, distinct, event, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from ..errors import InvalidInputError, StoreUnavailableError
from .models import Base, Book, ReadingSession
from .schemas import (
    BookCreate,
    BookResponse,
    ReadingSessionClose,
    ReadingSessionCreate,
    ReadingSessionResponse,
)

logger = logging.getLogger(__name__)

# Serializes transaction() scopes across every Database in this process
_write_lock = threading.Lock()

# Execution option that makes the next BEGIN take the SQLite write lock
_IMMEDIATE = "readtrack_immediate"


class Database:
    """Database connection and operations manager.

    Implements the ``SessionStore`` protocol over SQLite.
    """

    def __init__(self, db_path: Optional[str] = None, timeout: Optional[float] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. If None, uses
                     READTRACK_DB_PATH env var or default location.
            timeout: Seconds to wait for a locked database before failing.
        """
        if db_path is None or timeout is None:
            config = get_config()
            if db_path is None:
                db_path = str(config.db_path)
            if timeout is None:
                timeout = config.db_timeout

        self.db_path = Path(db_path)
        self.timeout = timeout
        self._is_memory = str(db_path) == ":memory:"

        if not self._is_memory:
            self._ensure_directory()

        # For in-memory databases, use StaticPool to reuse the same connection
        # This ensures all sessions share the same in-memory database
        if self._is_memory:
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                connect_args={"check_same_thread": False, "timeout": timeout},
            )
        self._install_transaction_hooks()
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _install_transaction_hooks(self) -> None:
        """Emit BEGIN from SQLAlchemy instead of the pysqlite driver.

        Every session is transactional from its first statement, SELECTs
        included; pysqlite alone would defer BEGIN until the first write.
        """

        @event.listens_for(self.engine, "connect")
        def _disable_driver_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(self.engine, "begin")
        def _begin(conn):
            if conn.get_execution_options().get(_IMMEDIATE):
                conn.exec_driver_sql("BEGIN IMMEDIATE")
            else:
                conn.exec_driver_sql("BEGIN")

    def create_tables(self) -> None:
        """Create all database tables."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Cannot create tables in {self.db_path}: {e}", e) from e

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise InvalidInputError(f"Record conflicts with stored data: {e.orig}") from e
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreUnavailableError(f"Session store failure: {e}", e) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """Run a read-check-write sequence atomically.

        Holds the process-wide write lock for the whole scope and runs every
        statement in one ``BEGIN IMMEDIATE`` transaction, which also takes
        SQLite's write lock so other processes on the same file wait (up to
        the configured timeout) until the scope commits or rolls back.
        """
        with _write_lock:
            logger.debug("Entering session log transaction")
            with self.get_session() as s:
                s.connection(execution_options={_IMMEDIATE: True})
                yield s

    # ========================================================================
    # Book Operations
    # ========================================================================

    def create_book(self, book: BookCreate, session: Optional[Session] = None) -> BookResponse:
        """Create a new book record."""

        def _create(s: Session) -> BookResponse:
            db_book = Book(title=book.title, author=book.author)
            if book.id:
                db_book.id = book.id
            s.add(db_book)
            s.flush()
            return BookResponse.model_validate(db_book)

        if session:
            return _create(session)
        else:
            with self.get_session() as s:
                return _create(s)

    def get_book(self, book_id: str, session: Optional[Session] = None) -> Optional[BookResponse]:
        """Get a book by ID."""

        def _get(s: Session) -> Optional[BookResponse]:
            book = s.get(Book, book_id)
            return BookResponse.model_validate(book) if book else None

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                return _get(s)

    def get_all_books(self, session: Optional[Session] = None) -> list[BookResponse]:
        """Get all books."""

        def _get(s: Session) -> list[BookResponse]:
            stmt = select(Book).order_by(Book.title)
            return [BookResponse.model_validate(b) for b in s.execute(stmt).scalars().all()]

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                return _get(s)

    def delete_book(self, book_id: str, session: Optional[Session] = None) -> bool:
        """Delete a book record and, by cascade, its reading sessions."""

        def _delete(s: Session) -> bool:
            book = s.get(Book, book_id)
            if not book:
                return False
            s.delete(book)
            return True

        if session:
            return _delete(session)
        else:
            with self.get_session() as s:
                return _delete(s)

    # ========================================================================
    # Reading Session Operations
    # ========================================================================

    def create_reading_session(
        self, data: ReadingSessionCreate, session: Optional[Session] = None
    ) -> ReadingSessionResponse:
        """Create a new reading session row."""

        def _create(s: Session) -> ReadingSessionResponse:
            db_session = ReadingSession(
                book_id=data.book_id,
                start_time=data.start_time,
                end_time=data.end_time,
                duration=data.duration,
                start_progress=data.start_progress,
                end_progress=data.end_progress,
                record_type=data.record_type.value,
                date=data.date,
                notes=data.notes,
            )
            s.add(db_session)
            s.flush()
            return ReadingSessionResponse.model_validate(db_session)

        if session:
            return _create(session)
        else:
            with self.get_session() as s:
                return _create(s)

    def get_reading_session(
        self, session_id: str, session: Optional[Session] = None
    ) -> Optional[ReadingSessionResponse]:
        """Get a reading session by ID."""

        def _get(s: Session) -> Optional[ReadingSessionResponse]:
            row = s.get(ReadingSession, session_id)
            return ReadingSessionResponse.model_validate(row) if row else None

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                return _get(s)

    def get_active_session(
        self, session: Optional[Session] = None
    ) -> Optional[ReadingSessionResponse]:
        """Get the reading session with no end time, if any."""

        def _get(s: Session) -> Optional[ReadingSessionResponse]:
            stmt = (
                select(ReadingSession)
                .where(ReadingSession.end_time.is_(None))
                .order_by(ReadingSession.start_time.desc())
                .limit(1)
            )
            row = s.execute(stmt).scalars().first()
            return ReadingSessionResponse.model_validate(row) if row else None

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                return _get(s)

    def close_reading_session(
        self,
        session_id: str,
        data: ReadingSessionClose,
        session: Optional[Session] = None,
    ) -> Optional[ReadingSessionResponse]:
        """Write the closing fields of a reading session."""

        def _close(s: Session) -> Optional[ReadingSessionResponse]:
            row = s.get(ReadingSession, session_id)
            if not row:
                return None

            row.end_time = data.end_time
            row.duration = data.duration
            row.end_progress = data.end_progress
            if data.notes is not None:
                row.notes = data.notes
            row.modified_at = datetime.now(timezone.utc).isoformat()
            s.flush()
            return ReadingSessionResponse.model_validate(row)

        if session:
            return _close(session)
        else:
            with self.get_session() as s:
                return _close(s)

    def get_sessions_for_book(
        self, book_id: str, session: Optional[Session] = None
    ) -> list[ReadingSessionResponse]:
        """Get all reading sessions for a book, most recent first."""

        def _get(s: Session) -> list[ReadingSessionResponse]:
            stmt = (
                select(ReadingSession)
                .where(ReadingSession.book_id == book_id)
                .order_by(ReadingSession.start_time.desc())
            )
            return [ReadingSessionResponse.model_validate(r) for r in s.execute(stmt).scalars()]

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                return _get(s)

    def get_sessions_by_date_range(
        self,
        start_date: str,
        end_date: str,
        session: Optional[Session] = None,
    ) -> list[ReadingSessionResponse]:
        """Get reading sessions whose bucket date is within a range.

        Args:
            start_date: Start date (ISO format YYYY-MM-DD), inclusive
            end_date: End date (ISO format YYYY-MM-DD), inclusive
        """

        def _get(s: Session) -> list[ReadingSessionResponse]:
            stmt = (
                select(ReadingSession)
                .where(
                    ReadingSession.date >= start_date,
                    ReadingSession.date <= end_date,
                )
                .order_by(ReadingSession.date, ReadingSession.start_time)
            )
            return [ReadingSessionResponse.model_validate(r) for r in s.execute(stmt).scalars()]

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                return _get(s)

    def delete_reading_session(self, session_id: str, session: Optional[Session] = None) -> bool:
        """Delete a reading session."""

        def _delete(s: Session) -> bool:
            row = s.get(ReadingSession, session_id)
            if not row:
                return False
            s.delete(row)
            return True

        if session:
            return _delete(session)
        else:
            with self.get_session() as s:
                return _delete(s)

    def delete_sessions_for_book(self, book_id: str, session: Optional[Session] = None) -> int:
        """Delete every reading session of a book, return the number removed."""

        def _delete(s: Session) -> int:
            stmt = delete(ReadingSession).where(ReadingSession.book_id == book_id)
            return s.execute(stmt).rowcount or 0

        if session:
            return _delete(session)
        else:
            with self.get_session() as s:
                return _delete(s)

    # ========================================================================
    # Aggregate Queries
    # ========================================================================

    @staticmethod
    def _filters(
        book_id: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> list:
        clauses = []
        if book_id is not None:
            clauses.append(ReadingSession.book_id == book_id)
        if start_date is not None:
            clauses.append(ReadingSession.date >= start_date)
        if end_date is not None:
            clauses.append(ReadingSession.date <= end_date)
        return clauses

    def sum_duration(
        self,
        book_id: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> Optional[int]:
        """SUM(duration) over the filtered sessions, None when nothing matches."""

        def _sum(s: Session) -> Optional[int]:
            stmt = select(func.sum(ReadingSession.duration)).where(
                *self._filters(book_id, start_date, end_date)
            )
            total = s.execute(stmt).scalar()
            return int(total) if total is not None else None

        if session:
            return _sum(session)
        else:
            with self.get_session() as s:
                return _sum(s)

    def count_sessions(
        self,
        book_id: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> int:
        """COUNT of the filtered sessions."""

        def _count(s: Session) -> int:
            stmt = select(func.count(ReadingSession.id)).where(
                *self._filters(book_id, start_date, end_date)
            )
            return s.execute(stmt).scalar() or 0

        if session:
            return _count(session)
        else:
            with self.get_session() as s:
                return _count(s)

    def count_reading_days(
        self, start_date: str, end_date: str, session: Optional[Session] = None
    ) -> int:
        """COUNT(DISTINCT date) within a date range."""

        def _count(s: Session) -> int:
            stmt = select(func.count(distinct(ReadingSession.date))).where(
                *self._filters(None, start_date, end_date)
            )
            return s.execute(stmt).scalar() or 0

        if session:
            return _count(session)
        else:
            with self.get_session() as s:
                return _count(s)

    def average_duration(self, book_id: str, session: Optional[Session] = None) -> Optional[float]:
        """AVG(duration) for a book, None when the book has no sessions."""

        def _avg(s: Session) -> Optional[float]:
            stmt = select(func.avg(ReadingSession.duration)).where(
                ReadingSession.book_id == book_id
            )
            avg = s.execute(stmt).scalar()
            return float(avg) if avg is not None else None

        if session:
            return _avg(session)
        else:
            with self.get_session() as s:
                return _avg(s)

    def last_start_time(self, book_id: str, session: Optional[Session] = None) -> Optional[int]:
        """MAX(start_time) for a book."""

        def _max(s: Session) -> Optional[int]:
            stmt = select(func.max(ReadingSession.start_time)).where(
                ReadingSession.book_id == book_id
            )
            latest = s.execute(stmt).scalar()
            return int(latest) if latest is not None else None

        if session:
            return _max(session)
        else:
            with self.get_session() as s:
                return _max(s)

    def distinct_book_ids(
        self, start_date: str, end_date: str, session: Optional[Session] = None
    ) -> list[str]:
        """Books with at least one session in a date range."""

        def _get(s: Session) -> list[str]:
            stmt = (
                select(distinct(ReadingSession.book_id))
                .where(*self._filters(None, start_date, end_date))
                .order_by(ReadingSession.book_id)
            )
            return list(s.execute(stmt).scalars().all())

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                return _get(s)

    def get_reading_dates(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> list[str]:
        """Distinct session dates, ascending."""

        def _get(s: Session) -> list[str]:
            stmt = (
                select(distinct(ReadingSession.date))
                .where(*self._filters(None, start_date, end_date))
                .order_by(ReadingSession.date)
            )
            return list(s.execute(stmt).scalars().all())

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                return _get(s)


# Global database instance
_db: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database(db_path)
        _db.create_tables()
    return _db


def reset_db() -> None:
    """Reset the global database instance. Used for testing."""
    global _db
    _db = None

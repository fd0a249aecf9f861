"""Reading session management.

Handles starting, stopping, and tracking the active timed reading session.
The session log in the store is the only source of truth: the active session
is always looked up, never cached, so it survives process restarts.
"""

import logging
from datetime import tzinfo
from typing import Optional

from pydantic import ValidationError

from ..config import get_config
from ..dates import Clock, calendar_date, now_ms
from ..db.schemas import (
    ReadingSessionClose,
    ReadingSessionCreate,
    ReadingSessionResponse,
    RecordType,
)
from ..db.sqlite import get_db
from ..db.store import SessionStore
from ..errors import (
    InvalidInputError,
    SessionAlreadyClosedError,
    SessionConflictError,
    SessionNotFoundError,
)

logger = logging.getLogger(__name__)


class SessionManager:
    """Manages the lifecycle of timed (precise) reading sessions."""

    def __init__(
        self,
        db: Optional[SessionStore] = None,
        clock: Optional[Clock] = None,
        tz: Optional[tzinfo] = None,
    ):
        """Initialize session manager.

        Args:
            db: Session store (default: global SQLite database)
            clock: Callable returning the current epoch milliseconds
            tz: Timezone for calendar dates (default: configured timezone)
        """
        self.db = db or get_db()
        self.clock = clock or now_ms
        self.tz = tz if tz is not None else get_config().tzinfo()

    def get_active_session(self) -> Optional[ReadingSessionResponse]:
        """Get the active reading session, if any."""
        return self.db.get_active_session()

    def has_active_session(self) -> bool:
        """Check if there's an active reading session."""
        return self.get_active_session() is not None

    def active_elapsed_ms(self) -> int:
        """Milliseconds elapsed in the active session, 0 when none is open."""
        active = self.get_active_session()
        if active is None:
            return 0
        return max(0, self.clock() - active.start_time)

    def start_session(
        self,
        book_id: str,
        start_progress: float,
        notes: Optional[str] = None,
    ) -> str:
        """Start a new reading session.

        Args:
            book_id: ID of the book being read
            start_progress: Progress marker at the start (page, percent, ...)
            notes: Optional notes

        Returns:
            ID of the new session

        Raises:
            SessionConflictError: If another session is still active
            InvalidInputError: If the progress value is not finite
        """
        with self.db.transaction() as tx:
            active = self.db.get_active_session(session=tx)
            if active is not None:
                raise SessionConflictError(active)

            started = self.clock()
            try:
                data = ReadingSessionCreate(
                    book_id=book_id,
                    start_time=started,
                    start_progress=start_progress,
                    end_progress=start_progress,
                    record_type=RecordType.PRECISE,
                    date=calendar_date(started, self.tz),
                    notes=notes,
                )
            except ValidationError as e:
                raise InvalidInputError(f"Invalid reading session: {e}") from e

            created = self.db.create_reading_session(data, session=tx)

        logger.info(f"Started reading session {created.id} for book {book_id}")
        return created.id

    def end_session(
        self,
        session_id: str,
        end_progress: float,
        notes: Optional[str] = None,
    ) -> ReadingSessionResponse:
        """Stop an active reading session.

        Duration is always computed from the clock and never accepted from
        the caller. Notes replace the existing notes only when given.

        Args:
            session_id: ID of the open session
            end_progress: Progress marker at the end
            notes: Optional notes

        Returns:
            The closed session

        Raises:
            SessionNotFoundError: If the session does not exist
            SessionAlreadyClosedError: If the session already has an end time
            InvalidInputError: If the progress value is not finite
        """
        with self.db.transaction() as tx:
            current = self.db.get_reading_session(session_id, session=tx)
            if current is None:
                raise SessionNotFoundError(session_id)
            if current.end_time is not None:
                raise SessionAlreadyClosedError(session_id)

            # A clock step backwards must not produce a negative duration
            ended = max(self.clock(), current.start_time)
            try:
                data = ReadingSessionClose(
                    end_time=ended,
                    duration=ended - current.start_time,
                    end_progress=end_progress,
                    notes=notes,
                )
            except ValidationError as e:
                raise InvalidInputError(f"Invalid reading session close: {e}") from e

            closed = self.db.close_reading_session(session_id, data, session=tx)

        logger.info(f"Closed reading session {session_id} after {closed.duration} ms")
        return closed


# Global session manager instance
_session_manager: Optional[SessionManager] = None


def get_session_manager(db: Optional[SessionStore] = None) -> SessionManager:
    """Get or create the global session manager instance."""
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager(db)
    return _session_manager


def reset_session_manager() -> None:
    """Reset the global session manager. Used for testing."""
    global _session_manager
    _session_manager = None

"""Session store interface."""

from typing import Any, ContextManager, Optional, Protocol

from .schemas import ReadingSessionClose, ReadingSessionCreate, ReadingSessionResponse


class SessionStore(Protocol):
    """Protocol defining the persistence operations the reading core consumes.

    Any backend can implement it. Every method accepts an optional ``session``,
    the transaction scope yielded by :meth:`transaction`; without one each call
    runs in its own short transaction.

    Failures of the backend are raised as ``StoreUnavailableError``.
    """

    def transaction(self) -> ContextManager[Any]:
        """Open a serialized read-check-write scope over the whole session log.

        Only one transaction scope is open at a time per store; the scope
        commits on normal exit and rolls back if the block raises.
        """
        ...

    def create_reading_session(
        self, data: ReadingSessionCreate, session: Optional[Any] = None
    ) -> ReadingSessionResponse:
        ...

    def get_reading_session(
        self, session_id: str, session: Optional[Any] = None
    ) -> Optional[ReadingSessionResponse]:
        ...

    def get_active_session(
        self, session: Optional[Any] = None
    ) -> Optional[ReadingSessionResponse]:
        """Return the session with no end time, if any."""
        ...

    def close_reading_session(
        self, session_id: str, data: ReadingSessionClose, session: Optional[Any] = None
    ) -> Optional[ReadingSessionResponse]:
        ...

    def get_sessions_for_book(
        self, book_id: str, session: Optional[Any] = None
    ) -> list[ReadingSessionResponse]:
        ...

    def get_sessions_by_date_range(
        self, start_date: str, end_date: str, session: Optional[Any] = None
    ) -> list[ReadingSessionResponse]:
        ...

    def delete_reading_session(self, session_id: str, session: Optional[Any] = None) -> bool:
        ...

    def delete_sessions_for_book(self, book_id: str, session: Optional[Any] = None) -> int:
        ...

    # Scalar aggregates. Empty inputs yield None (sum/avg/max) or 0 (counts);
    # callers apply their own identity values.

    def sum_duration(
        self,
        book_id: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        session: Optional[Any] = None,
    ) -> Optional[int]:
        ...

    def count_sessions(
        self,
        book_id: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        session: Optional[Any] = None,
    ) -> int:
        ...

    def count_reading_days(
        self, start_date: str, end_date: str, session: Optional[Any] = None
    ) -> int:
        ...

    def average_duration(self, book_id: str, session: Optional[Any] = None) -> Optional[float]:
        ...

    def last_start_time(self, book_id: str, session: Optional[Any] = None) -> Optional[int]:
        ...

    def distinct_book_ids(
        self, start_date: str, end_date: str, session: Optional[Any] = None
    ) -> list[str]:
        ...

    def get_reading_dates(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        session: Optional[Any] = None,
    ) -> list[str]:
        """Distinct bucket dates, ascending."""
        ...

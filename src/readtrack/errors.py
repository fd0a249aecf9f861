"""Exceptions raised by the reading session core.

Every error is surfaced to the immediate caller; nothing here is retried or
swallowed.
"""

from typing import Any, Optional


class ReadTrackError(Exception):
    """Base exception for readtrack errors."""

    pass


class SessionConflictError(ReadTrackError):
    """Raised when starting a session while another one is still active."""

    def __init__(self, active_session: Any):
        self.active_session = active_session
        super().__init__(
            f"Session {active_session.id} for book {active_session.book_id} is still active. "
            "Stop it before starting a new one."
        )


class SessionNotFoundError(ReadTrackError):
    """Raised when a session id does not exist."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Reading session not found: {session_id}")


class SessionAlreadyClosedError(ReadTrackError):
    """Raised when ending a session that already has an end time."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Reading session already closed: {session_id}")


class InvalidInputError(ReadTrackError, ValueError):
    """Raised for malformed dates, negative durations or non-finite progress."""

    pass


class StoreUnavailableError(ReadTrackError):
    """Raised when the session store fails or times out."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)

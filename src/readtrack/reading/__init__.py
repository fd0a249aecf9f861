"""Reading session lifecycle and manual record entry."""

from .manual import ManualEntryValidator
from .session import (
    SessionManager,
    get_session_manager,
    reset_session_manager,
)

__all__ = [
    "ManualEntryValidator",
    "SessionManager",
    "get_session_manager",
    "reset_session_manager",
]

"""Database module for local SQLite storage."""

from .models import Book, ReadingSession
from .schemas import (
    BookCreate,
    BookResponse,
    ManualRecordCreate,
    ReadingSessionClose,
    ReadingSessionCreate,
    ReadingSessionResponse,
    RecordType,
)
from .sqlite import Database, get_db
from .store import SessionStore

__all__ = [
    "Book",
    "ReadingSession",
    "BookCreate",
    "BookResponse",
    "ManualRecordCreate",
    "ReadingSessionClose",
    "ReadingSessionCreate",
    "ReadingSessionResponse",
    "RecordType",
    "Database",
    "get_db",
    "SessionStore",
]

"""SQLAlchemy ORM models for local SQLite database.

Tables:
- books: Owning rows that reading sessions reference
- reading_sessions: Timed (precise) and manually entered reading sessions
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import BigInteger, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from .schemas import RecordType


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Book(Base):
    """Book model - the owner of reading sessions."""

    __tablename__ = "books"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    author: Mapped[Optional[str]] = mapped_column(String(500))

    created_at: Mapped[str] = mapped_column(String(32), default=utc_now_iso)

    # Relationships
    sessions: Mapped[list["ReadingSession"]] = relationship(
        "ReadingSession", back_populates="book", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}')>"


class ReadingSession(Base):
    """Reading session model - one span of reading against a single book."""

    __tablename__ = "reading_sessions"
    __table_args__ = (Index("ix_reading_sessions_book_date", "book_id", "date"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    book_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Epoch milliseconds; end_time is NULL while the session is active
    start_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end_time: Mapped[Optional[int]] = mapped_column(BigInteger, index=True)
    duration: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    start_progress: Mapped[float] = mapped_column(Float, nullable=False)
    end_progress: Mapped[float] = mapped_column(Float, nullable=False)

    record_type: Mapped[str] = mapped_column(
        String(10), nullable=False, default=RecordType.PRECISE.value
    )
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)  # ISO date
    notes: Mapped[Optional[str]] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utc_now_iso)
    modified_at: Mapped[Optional[str]] = mapped_column(String(32))

    # Relationships
    book: Mapped["Book"] = relationship("Book", back_populates="sessions")

    def __repr__(self) -> str:
        return (
            f"<ReadingSession(id={self.id}, book_id={self.book_id}, "
            f"date={self.date}, type={self.record_type})>"
        )

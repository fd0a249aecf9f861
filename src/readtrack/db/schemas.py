"""Pydantic schemas for data validation.

These schemas define the plain value types that cross the boundary between
the reading session core and its callers: epoch milliseconds for timestamps
and durations, floats for progress and ``YYYY-MM-DD`` strings for dates.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..dates import is_calendar_date


class RecordType(str, Enum):
    """How a reading session was recorded."""

    PRECISE = "precise"  # Timer-driven, opened and closed through the lifecycle
    MANUAL = "manual"  # Retroactive entry with an explicit duration


def _check_calendar_date(v: str) -> str:
    if not is_calendar_date(v):
        raise ValueError(f"invalid calendar date {v!r}, expected YYYY-MM-DD")
    return v


# ============================================================================
# Book Schemas
# ============================================================================


class BookCreate(BaseModel):
    """Schema for creating the book row a session belongs to."""

    id: Optional[str] = Field(None, min_length=1, max_length=36)
    title: str = Field(..., min_length=1, description="Book title")
    author: Optional[str] = None


class BookResponse(BookCreate):
    """Schema for book responses."""

    id: str
    created_at: datetime

    model_config = {"from_attributes": True}


# ============================================================================
# Reading Session Schemas
# ============================================================================


class ReadingSessionBase(BaseModel):
    """Base reading session fields."""

    book_id: str = Field(..., min_length=1)
    start_time: int = Field(..., ge=0, description="Epoch milliseconds")
    end_time: Optional[int] = Field(None, ge=0, description="Epoch milliseconds")
    duration: int = Field(0, ge=0, description="Milliseconds")
    start_progress: float = Field(..., allow_inf_nan=False)
    end_progress: float = Field(..., allow_inf_nan=False)
    record_type: RecordType
    date: str = Field(..., description="Bucket date, YYYY-MM-DD")
    notes: Optional[str] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        """Require a syntactically valid calendar date."""
        return _check_calendar_date(v)


class ReadingSessionCreate(ReadingSessionBase):
    """Schema for inserting a reading session."""

    @model_validator(mode="after")
    def check_closed_fields(self) -> "ReadingSessionCreate":
        """A closed row must carry a consistent duration."""
        if self.end_time is not None:
            if self.end_time < self.start_time:
                raise ValueError("end_time must not be before start_time")
            if self.duration != self.end_time - self.start_time:
                raise ValueError("duration must equal end_time - start_time")
        elif self.duration != 0:
            raise ValueError("an open session has no duration")
        return self


class ReadingSessionClose(BaseModel):
    """Fields written when a session is closed."""

    end_time: int = Field(..., ge=0)
    duration: int = Field(..., ge=0)
    end_progress: float = Field(..., allow_inf_nan=False)
    notes: Optional[str] = None


class ReadingSessionResponse(ReadingSessionBase):
    """Schema for reading session responses."""

    id: str

    model_config = {"from_attributes": True, "frozen": True}

    @property
    def is_active(self) -> bool:
        """True while the session has no end time."""
        return self.end_time is None

    @property
    def progress_delta(self) -> float:
        """Progress made during the session (may be negative)."""
        return self.end_progress - self.start_progress


class ManualRecordCreate(BaseModel):
    """Schema for a manually entered (retroactive) reading record."""

    book_id: str = Field(..., min_length=1)
    start_progress: float = Field(..., allow_inf_nan=False)
    end_progress: float = Field(..., allow_inf_nan=False)
    duration_ms: int = Field(..., ge=0)
    date: str
    notes: Optional[str] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        """Require a syntactically valid calendar date."""
        return _check_calendar_date(v)

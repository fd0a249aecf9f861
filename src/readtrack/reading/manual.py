"""Manually entered reading records.

Manual records describe reading done in the past. They are written closed,
never pass through the active state and never compete with the timed session
for the single active slot.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from ..dates import Clock, now_ms
from ..db.schemas import ManualRecordCreate, ReadingSessionCreate, RecordType
from ..db.sqlite import get_db
from ..db.store import SessionStore
from ..errors import InvalidInputError

logger = logging.getLogger(__name__)


class ManualEntryValidator:
    """Validates and stores retroactive reading records."""

    def __init__(self, db: Optional[SessionStore] = None, clock: Optional[Clock] = None):
        self.db = db or get_db()
        self.clock = clock or now_ms

    def add_manual_record(
        self,
        book_id: str,
        start_progress: float,
        end_progress: float,
        duration_ms: int,
        date: str,
        notes: Optional[str] = None,
    ) -> str:
        """Add a manual reading record.

        The start and end timestamps are synthesized as ``now - duration_ms``
        and ``now`` so the row has the same shape as a timed session; ``date``
        is what the record is bucketed under.

        Args:
            book_id: ID of the book read
            start_progress: Progress at the start of the reading
            end_progress: Progress at the end of the reading
            duration_ms: Time spent reading, in milliseconds
            date: Day the reading happened (YYYY-MM-DD)
            notes: Optional notes

        Returns:
            ID of the new record

        Raises:
            InvalidInputError: For a negative duration, a malformed date or
                non-finite progress
        """
        try:
            entry = ManualRecordCreate(
                book_id=book_id,
                start_progress=start_progress,
                end_progress=end_progress,
                duration_ms=duration_ms,
                date=date,
                notes=notes,
            )
        except ValidationError as e:
            raise InvalidInputError(f"Invalid manual record: {e}") from e

        ended = self.clock()
        started = ended - entry.duration_ms
        if started < 0:
            raise InvalidInputError(f"Duration {entry.duration_ms} ms reaches before the epoch")

        data = ReadingSessionCreate(
            book_id=entry.book_id,
            start_time=started,
            end_time=ended,
            duration=entry.duration_ms,
            start_progress=entry.start_progress,
            end_progress=entry.end_progress,
            record_type=RecordType.MANUAL,
            date=entry.date,
            notes=entry.notes,
        )
        created = self.db.create_reading_session(data)

        logger.info(
            f"Logged manual record {created.id} for book {book_id} on {entry.date} "
            f"({entry.duration_ms} ms)"
        )
        return created.id

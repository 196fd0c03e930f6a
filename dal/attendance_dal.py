"""Async data access for attendance records.

`AttendanceStore` is the contract every backend satisfies; the SQLite
implementation here is the in-process fallback used when no networked
store is configured. It is compatible with
`utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol, Sequence

import aiosqlite

from models.attendance_record import AttendanceRecord, AttendeeIdentity, RecordOutcome
from models.errors import StoreWriteFailure
from utils.clock import now_ms
from utils.database_init import AsyncDatabaseInitializer

logger = logging.getLogger(__name__)


class AttendanceStore(Protocol):
    """Single source of truth for who attended which session."""

    async def record_if_absent(self, session_id: str, attendee_id: str) -> RecordOutcome:
        ...

    async def list_by_session(self, session_id: str) -> List[AttendanceRecord]:
        ...

    async def get_attendee(self, attendee_id: str) -> Optional[AttendeeIdentity]:
        ...

    async def find_attendee_by_roll_key(self, roll_key: str) -> Optional[AttendeeIdentity]:
        ...

    async def list_attendees(self) -> List[AttendeeIdentity]:
        ...


class SQLiteAttendanceStore:
    """Attendance store backed by a local SQLite file.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    backend = "sqlite"

    def __init__(self, db_initializer: AsyncDatabaseInitializer, clock: Callable[[], int] = now_ms) -> None:
        self._db = db_initializer
        self._clock = clock

    async def record_if_absent(self, session_id: str, attendee_id: str) -> RecordOutcome:
        """Insert an ATTENDANCE row unless one exists for the pair.

        Args:
            session_id: Session the scan belongs to.
            attendee_id: Attendee who scanned.

        Returns:
            INSERTED for the first scan, ALREADY_PRESENT afterwards.

        Raises:
            StoreWriteFailure: The database could not be read or written.
        """
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute(
                    "SELECT id FROM ATTENDANCE WHERE session_id = ? AND student_id = ?",
                    (session_id, attendee_id),
                )
                if await cur.fetchone():
                    return RecordOutcome.ALREADY_PRESENT
                try:
                    await conn.execute(
                        "INSERT INTO ATTENDANCE (session_id, student_id, created_at) VALUES (?, ?, ?)",
                        (session_id, attendee_id, self._clock()),
                    )
                    await conn.commit()
                except aiosqlite.IntegrityError:
                    # Lost the race against an identical concurrent scan.
                    return RecordOutcome.ALREADY_PRESENT
                return RecordOutcome.INSERTED
        except aiosqlite.Error as exc:
            logger.error("Failed to record attendance for %s in %s: %s", attendee_id, session_id, exc)
            raise StoreWriteFailure() from exc

    async def list_by_session(self, session_id: str) -> List[AttendanceRecord]:
        """Return the session's records in arrival order, joined with attendee names."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                """
                SELECT a.student_id, a.session_id, a.created_at, s.name
                FROM ATTENDANCE a LEFT JOIN STUDENT s ON s.id = a.student_id
                WHERE a.session_id = ?
                ORDER BY a.created_at, a.id
                """,
                (session_id,),
            )
            rows = await cur.fetchall()
            return [self._row_to_record(r) for r in rows]

    async def get_attendee(self, attendee_id: str) -> Optional[AttendeeIdentity]:
        """Return the attendee with `attendee_id`, or None if not registered."""
        async with self._db.connection() as conn:
            cur = await conn.execute("SELECT id, name, roll_number FROM STUDENT WHERE id = ?", (attendee_id,))
            row = await cur.fetchone()
            return self._row_to_identity(row) if row else None

    async def find_attendee_by_roll_key(self, roll_key: str) -> Optional[AttendeeIdentity]:
        """Return the attendee registered under `roll_key`, or None."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT id, name, roll_number FROM STUDENT WHERE roll_number = ?", (roll_key.strip(),)
            )
            row = await cur.fetchone()
            return self._row_to_identity(row) if row else None

    async def list_attendees(self) -> List[AttendeeIdentity]:
        """List all registered attendees ordered by name."""
        async with self._db.connection() as conn:
            cur = await conn.execute("SELECT id, name, roll_number FROM STUDENT ORDER BY name, id")
            rows = await cur.fetchall()
            return [self._row_to_identity(r) for r in rows]

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> AttendanceRecord:
        return AttendanceRecord(
            attendee_id=row[0],
            session_id=row[1],
            recorded_at=int(row[2]),
            display_name=row[3],
        )

    @staticmethod
    def _row_to_identity(row: Sequence[object]) -> AttendeeIdentity:
        return AttendeeIdentity(id=row[0], display_name=row[1], roll_key=row[2])

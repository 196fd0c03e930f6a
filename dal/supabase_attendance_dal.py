"""Attendance store backed by a Supabase (PostgREST) project.

Tables follow the hosted schema:

    students(id uuid primary key, name text, roll_number text unique)
    attendance(id bigserial, student_id uuid references students,
               session_id text, created_at timestamptz default now(),
               unique (session_id, student_id))

supabase-py is synchronous, so every query runs in a worker thread to keep
the event loop free.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import Client, create_client

from models.attendance_record import AttendanceRecord, AttendeeIdentity, RecordOutcome
from models.errors import StoreWriteFailure
from utils.clock import now_ms

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


def _timestamp_ms(value: Any, fallback: int) -> int:
    """Convert a PostgREST timestamp (ISO text) or epoch value into milliseconds."""
    if value is None:
        return fallback
    if isinstance(value, (int, float)):
        return int(value)
    try:
        return int(datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp() * 1000)
    except ValueError:
        return fallback


class SupabaseAttendanceStore:
    """Networked attendance store with the same contract as the SQLite fallback."""

    backend = "supabase"

    def __init__(self, client: Client, clock: Callable[[], int] = now_ms) -> None:
        if client is None:
            raise ValueError("Supabase client is required.")
        self.client = client
        self._clock = clock

    @classmethod
    def from_credentials(cls, url: str, key: str) -> "SupabaseAttendanceStore":
        return cls(create_client(url, key))

    async def record_if_absent(self, session_id: str, attendee_id: str) -> RecordOutcome:
        """Check for an existing row, then insert one; see `AttendanceStore`."""
        try:
            existing = await asyncio.to_thread(self._find_record, session_id, attendee_id)
            if existing:
                return RecordOutcome.ALREADY_PRESENT
            await asyncio.to_thread(self._insert_record, session_id, attendee_id)
            return RecordOutcome.INSERTED
        except APIError as exc:
            if getattr(exc, "code", None) == UNIQUE_VIOLATION:
                return RecordOutcome.ALREADY_PRESENT
            logger.error("Supabase rejected attendance for %s in %s: %s", attendee_id, session_id, exc)
            raise StoreWriteFailure() from exc
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.error("Supabase unreachable while recording %s in %s: %s", attendee_id, session_id, exc)
            raise StoreWriteFailure() from exc

    async def list_by_session(self, session_id: str) -> List[AttendanceRecord]:
        """Return the session's records joined with student names, oldest first."""
        rows = await asyncio.to_thread(self._select_session, session_id)
        fallback = self._clock()
        records: List[AttendanceRecord] = []
        for row in rows:
            student = row.get("students")
            if isinstance(student, list):
                student = student[0] if student else None
            records.append(
                AttendanceRecord(
                    attendee_id=(student or {}).get("id") or row.get("student_id"),
                    session_id=row.get("session_id") or session_id,
                    recorded_at=_timestamp_ms(row.get("created_at"), fallback),
                    display_name=(student or {}).get("name"),
                )
            )
        records.sort(key=lambda r: r.recorded_at)
        return records

    async def get_attendee(self, attendee_id: str) -> Optional[AttendeeIdentity]:
        rows = await asyncio.to_thread(self._select_students, "id", attendee_id)
        return self._row_to_identity(rows[0]) if rows else None

    async def find_attendee_by_roll_key(self, roll_key: str) -> Optional[AttendeeIdentity]:
        rows = await asyncio.to_thread(self._select_students, "roll_number", roll_key.strip())
        return self._row_to_identity(rows[0]) if rows else None

    async def list_attendees(self) -> List[AttendeeIdentity]:
        rows = await asyncio.to_thread(self._select_students, None, None)
        return [self._row_to_identity(r) for r in rows]

    # Blocking helpers, executed via asyncio.to_thread

    def _find_record(self, session_id: str, attendee_id: str) -> List[Dict[str, Any]]:
        res = (
            self.client.table("attendance")
            .select("id")
            .eq("student_id", attendee_id)
            .eq("session_id", session_id)
            .limit(1)
            .execute()
        )
        return res.data or []

    def _insert_record(self, session_id: str, attendee_id: str) -> None:
        self.client.table("attendance").insert({"student_id": attendee_id, "session_id": session_id}).execute()

    def _select_session(self, session_id: str) -> List[Dict[str, Any]]:
        res = (
            self.client.table("attendance")
            .select("student_id, session_id, created_at, students(id, name)")
            .eq("session_id", session_id)
            .execute()
        )
        return res.data or []

    def _select_students(self, column: Optional[str], value: Optional[str]) -> List[Dict[str, Any]]:
        query = self.client.table("students").select("id, name, roll_number")
        if column is not None:
            query = query.eq(column, value)
        res = query.order("name").execute()
        return res.data or []

    @staticmethod
    def _row_to_identity(row: Dict[str, Any]) -> AttendeeIdentity:
        return AttendeeIdentity(id=str(row["id"]), display_name=row["name"], roll_key=row["roll_number"])

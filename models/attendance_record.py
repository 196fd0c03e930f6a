from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class RecordOutcome(str, enum.Enum):
    """Outcome of `record_if_absent`."""

    INSERTED = "inserted"
    ALREADY_PRESENT = "already_present"


@dataclass(frozen=True)
class AttendeeIdentity:
    """Reference data for a registered attendee.

    Attributes:
        id: Stable attendee identifier used as the attendance key.
        display_name: Name shown on the presenter roster.
        roll_key: External roll number the attendee logs in with.
    """

    id: str
    display_name: str
    roll_key: str


@dataclass(frozen=True)
class AttendanceRecord:
    """In-memory representation of a row in the attendance table.

    Attributes:
        attendee_id: Attendee who scanned.
        session_id: Session the scan was recorded against.
        recorded_at: Milliseconds since epoch of the first scan.
        display_name: Joined attendee name, None when the attendee is not registered.
    """

    attendee_id: str
    session_id: str
    recorded_at: int
    display_name: Optional[str] = None

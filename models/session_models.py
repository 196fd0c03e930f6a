"""Session domain models for attendance tracking."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Tuple

UNKNOWN_ATTENDEE_NAME = "Unknown Student"


class SessionPhase(str, enum.Enum):
	"""Presenter lifecycle states."""

	IDLE = "idle"
	ACTIVE = "active"


@dataclass
class Session:
	"""A single attendance session owned by the presenter."""

	session_id: str
	started_at: int
	active: bool = True


@dataclass(frozen=True)
class AttendanceToken:
	"""Time-windowed proof of presence bound to a session.

	Timestamps are milliseconds since the Unix epoch.
	"""

	session_id: str
	issued_at: int
	expires_at: int

	def to_payload(self) -> dict:
		"""Return the wire form encoded into the QR code."""
		return {"sessionId": self.session_id, "timestamp": self.issued_at, "expiresAt": self.expires_at}


@dataclass(frozen=True)
class RosterEntry:
	"""One line of the presenter-visible roster."""

	attendee_id: str
	display_name: str
	recorded_at: int


@dataclass
class HeadcountResult:
	"""Latest vision-model headcount for a session, if any."""

	session_id: Optional[str] = None
	count: Optional[int] = None


@dataclass(frozen=True)
class Reconciliation:
	"""Informational comparison between headcount and roster size."""

	roster_size: int
	headcount: Optional[int]
	discrepancy: Optional[int]
	status: str


@dataclass(frozen=True)
class ScanOutcome:
	"""Result of a successful scan submission."""

	status: str
	message: str
	session_id: str
	attendee_id: str


@dataclass
class SessionSnapshot:
	"""Point-in-time view of the controller for the presenter screen."""

	phase: SessionPhase
	session: Optional[Session]
	token: Optional[AttendanceToken]
	seconds_left: Optional[int]
	roster: Tuple[RosterEntry, ...] = field(default_factory=tuple)
	headcount: HeadcountResult = field(default_factory=HeadcountResult)
	reconciliation: Optional[Reconciliation] = None

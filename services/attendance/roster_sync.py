"""Mirror the attendance store into the presenter's roster by polling."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional, Tuple

from dal.attendance_dal import AttendanceStore
from models.attendance_record import AttendanceRecord
from models.session_models import UNKNOWN_ATTENDEE_NAME, RosterEntry

POLL_PERIOD_SECONDS = 2

logger = logging.getLogger(__name__)


def build_roster(records: Iterable[AttendanceRecord]) -> Tuple[RosterEntry, ...]:
	"""Return roster entries sorted by display name, then attendee id."""
	entries = [
		RosterEntry(
			attendee_id=rec.attendee_id,
			display_name=rec.display_name or UNKNOWN_ATTENDEE_NAME,
			recorded_at=rec.recorded_at,
		)
		for rec in records
	]
	entries.sort(key=lambda e: (e.display_name, e.attendee_id))
	return tuple(entries)


class RosterSync:
	"""Poll `list_by_session` and republish the roster when its size changes.

	Only the record count is compared; a correction that keeps the count
	constant is not picked up until the count moves again.
	"""

	def __init__(
		self,
		store: AttendanceStore,
		poll_seconds: float = POLL_PERIOD_SECONDS,
		sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
	) -> None:
		if poll_seconds <= 0:
			raise ValueError("Poll period must be positive.")
		self.store = store
		self.poll_seconds = poll_seconds
		self._sleep = sleep
		self._roster: Tuple[RosterEntry, ...] = ()
		self._session_id: Optional[str] = None
		self._in_flight = False

	@property
	def roster(self) -> Tuple[RosterEntry, ...]:
		return self._roster

	def reset(self, session_id: Optional[str]) -> None:
		"""Clear the roster and bind it to `session_id`."""
		self._roster = ()
		self._session_id = session_id

	def detach(self) -> None:
		"""Stop accepting refresh results; the last roster stays visible."""
		self._session_id = None

	async def refresh(self, session_id: str) -> bool:
		"""Run one poll for `session_id`. Returns True if a new roster was published."""
		if self._in_flight or session_id != self._session_id:
			return False
		self._in_flight = True
		try:
			records = await self.store.list_by_session(session_id)
		finally:
			self._in_flight = False

		if session_id != self._session_id:
			# The session was stopped or replaced while the query was pending.
			return False
		if len(records) == len(self._roster):
			return False
		self._roster = build_roster(records)
		logger.info("Roster for %s now has %d attendee(s)", session_id, len(self._roster))
		return True

	async def run(self, session_id: str) -> None:
		"""Poll until cancelled. Read failures are logged and retried next tick."""
		while True:
			try:
				await self.refresh(session_id)
			except asyncio.CancelledError:
				raise
			except Exception as exc:  # pylint: disable=broad-exception-caught
				logger.warning("Error fetching attendance for %s: %s", session_id, exc)
			await self._sleep(self.poll_seconds)

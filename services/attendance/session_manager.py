"""Presenter session lifecycle: token rotation, roster polling and headcount."""

from __future__ import annotations

import asyncio
import logging
import math
import secrets
import string
from typing import Awaitable, Callable, List, Optional, Tuple

from dal.attendance_dal import AttendanceStore
from models.attendance_record import RecordOutcome
from models.errors import SessionAlreadyActive, SessionNotActive
from models.session_models import (
	AttendanceToken,
	HeadcountResult,
	Reconciliation,
	RosterEntry,
	ScanOutcome,
	Session,
	SessionPhase,
	SessionSnapshot,
)
from services.attendance.roster_sync import POLL_PERIOD_SECONDS, RosterSync
from services.attendance.token_minter import ROTATION_PERIOD_SECONDS, TokenMinter
from services.attendance.token_validator import TokenValidator
from utils.clock import now_ms

SESSION_SUFFIX_ALPHABET = string.digits + string.ascii_lowercase
SESSION_SUFFIX_LENGTH = 7

RECORDED_MESSAGE = "Attendance Marked Successfully!"
ALREADY_RECORDED_MESSAGE = "Attendance already marked for this session."

logger = logging.getLogger(__name__)


def new_session_id(now: int) -> str:
	"""Return a session id made of the start time and a random suffix."""
	suffix = "".join(secrets.choice(SESSION_SUFFIX_ALPHABET) for _ in range(SESSION_SUFFIX_LENGTH))
	return f"session-{now}-{suffix}"


def reconcile_headcount(roster_size: int, headcount: Optional[int]) -> Reconciliation:
	"""Compare a headcount with the roster size. Informational only."""
	if headcount is None:
		return Reconciliation(roster_size=roster_size, headcount=None, discrepancy=None, status="pending")
	discrepancy = headcount - roster_size
	if discrepancy > 0:
		status = "surplus"
	elif discrepancy < 0:
		status = "shortfall"
	else:
		status = "match"
	return Reconciliation(roster_size=roster_size, headcount=headcount, discrepancy=discrepancy, status=status)


class SessionController:
	"""Own the single active session of a presenter.

	`start()` spawns two asyncio tasks scoped to the session: token rotation
	and roster polling. `stop()` cancels and awaits both before returning, so
	no tick can land after it.
	"""

	def __init__(
		self,
		store: AttendanceStore,
		*,
		rotation_seconds: float = ROTATION_PERIOD_SECONDS,
		poll_seconds: float = POLL_PERIOD_SECONDS,
		clock: Callable[[], int] = now_ms,
		sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
	) -> None:
		self.store = store
		self.clock = clock
		self.minter = TokenMinter(rotation_seconds, clock=clock, sleep=sleep)
		self.validator = TokenValidator(clock=clock)
		self.roster_sync = RosterSync(store, poll_seconds=poll_seconds, sleep=sleep)
		self._session: Optional[Session] = None
		self._token: Optional[AttendanceToken] = None
		self._headcount = HeadcountResult()
		self._tasks: List[asyncio.Task] = []

	@property
	def phase(self) -> SessionPhase:
		return SessionPhase.ACTIVE if self._session is not None else SessionPhase.IDLE

	@property
	def session(self) -> Optional[Session]:
		return self._session

	@property
	def current_token(self) -> Optional[AttendanceToken]:
		return self._token

	@property
	def headcount(self) -> HeadcountResult:
		return self._headcount

	@property
	def roster(self) -> Tuple[RosterEntry, ...]:
		return self.roster_sync.roster

	def _require_active(self) -> Session:
		if self._session is None:
			raise SessionNotActive()
		return self._session

	async def start(self) -> Session:
		"""Begin a new session and its rotation and polling tasks."""
		if self._session is not None:
			raise SessionAlreadyActive()
		now = self.clock()
		session = Session(session_id=new_session_id(now), started_at=now)
		self._session = session
		self._headcount = HeadcountResult(session_id=session.session_id)
		self.roster_sync.reset(session.session_id)
		self._token = self.minter.mint(session.session_id, now)
		self._tasks = [
			asyncio.create_task(
				self.minter.rotate(session.session_id, self._publish_token),
				name=f"rotate-{session.session_id}",
			),
			asyncio.create_task(
				self.roster_sync.run(session.session_id),
				name=f"roster-{session.session_id}",
			),
		]
		logger.info("Started attendance session %s", session.session_id)
		return session

	async def stop(self) -> Session:
		"""End the session; its id is discarded and no longer accepted."""
		session = self._require_active()
		session.active = False
		self._session = None
		self._token = None
		self.roster_sync.detach()
		tasks, self._tasks = self._tasks, []
		for task in tasks:
			task.cancel()
		await asyncio.gather(*tasks, return_exceptions=True)
		logger.info("Stopped attendance session %s with %d attendee(s)", session.session_id, len(self.roster))
		return session

	async def shutdown(self) -> None:
		"""Stop the session if one is running; used on application exit."""
		if self._session is not None:
			await self.stop()

	def _publish_token(self, token: AttendanceToken) -> None:
		if self._session is None or token.session_id != self._session.session_id:
			return
		self._token = token

	def seconds_left(self, now: Optional[int] = None) -> Optional[int]:
		"""Whole seconds until the current token expires, None when idle."""
		if self._token is None:
			return None
		current = self.clock() if now is None else now
		return max(0, math.ceil((self._token.expires_at - current) / 1000))

	def record_headcount(self, count: int) -> HeadcountResult:
		"""Store a confirmed headcount for the active session; last write wins."""
		session = self._require_active()
		if isinstance(count, bool) or not isinstance(count, int) or count < 0:
			raise ValueError("Headcount must be a non-negative integer.")
		self._headcount = HeadcountResult(session_id=session.session_id, count=count)
		logger.info("Recorded headcount %d for %s", count, session.session_id)
		return self._headcount

	async def submit_scan(self, attendee_id: str, payload: str | bytes | dict, now: Optional[int] = None) -> ScanOutcome:
		"""Validate a scanned payload and record the attendee once per session.

		Raises:
			MalformedToken, ExpiredToken, SessionMismatch: The scan was rejected.
			StoreWriteFailure: The store could not record the attendance.
		"""
		active_id = self._session.session_id if self._session else None
		token = self.validator.validate(payload, active_id, now=now)
		outcome = await self.store.record_if_absent(token.session_id, attendee_id)
		if outcome is RecordOutcome.ALREADY_PRESENT:
			return ScanOutcome("already_recorded", ALREADY_RECORDED_MESSAGE, token.session_id, attendee_id)
		logger.info("Recorded %s in %s", attendee_id, token.session_id)
		return ScanOutcome("recorded", RECORDED_MESSAGE, token.session_id, attendee_id)

	async def refresh_roster(self) -> Tuple[RosterEntry, ...]:
		"""Poll the store now instead of waiting for the next tick."""
		session = self._require_active()
		await self.roster_sync.refresh(session.session_id)
		return self.roster

	def reconcile(self) -> Reconciliation:
		return reconcile_headcount(len(self.roster), self._headcount.count)

	def snapshot(self, now: Optional[int] = None) -> SessionSnapshot:
		return SessionSnapshot(
			phase=self.phase,
			session=self._session,
			token=self._token,
			seconds_left=self.seconds_left(now),
			roster=self.roster,
			headcount=self._headcount,
			reconciliation=self.reconcile(),
		)

"""Mint and rotate time-windowed attendance tokens."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from models.session_models import AttendanceToken
from utils.clock import now_ms

ROTATION_PERIOD_SECONDS = 30

logger = logging.getLogger(__name__)


class TokenMinter:
	"""Produce a fresh token for a session every rotation period."""

	def __init__(
		self,
		rotation_seconds: float = ROTATION_PERIOD_SECONDS,
		clock: Callable[[], int] = now_ms,
		sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
	) -> None:
		if rotation_seconds <= 0:
			raise ValueError("Rotation period must be positive.")
		self.rotation_seconds = rotation_seconds
		self.clock = clock
		self._sleep = sleep

	@property
	def rotation_ms(self) -> int:
		return int(self.rotation_seconds * 1000)

	def mint(self, session_id: str, now: Optional[int] = None) -> AttendanceToken:
		"""Return a token issued at `now` that expires one period later."""
		issued_at = self.clock() if now is None else now
		return AttendanceToken(session_id=session_id, issued_at=issued_at, expires_at=issued_at + self.rotation_ms)

	async def rotate(self, session_id: str, publish: Callable[[AttendanceToken], None]) -> None:
		"""Mint a new token after every period until cancelled.

		The first token is minted by the caller when the session starts, so
		this loop sleeps before each mint.
		"""
		while True:
			await self._sleep(self.rotation_seconds)
			token = self.mint(session_id)
			logger.debug("Rotated token for %s, expires at %s", session_id, token.expires_at)
			publish(token)

"""Decode scanned attendance payloads and check them against the session."""

from __future__ import annotations

import json
import math
from typing import Any, Callable, Optional

from models.errors import ExpiredToken, MalformedToken, SessionMismatch
from models.session_models import AttendanceToken
from utils.clock import now_ms


def _is_timestamp(value: Any) -> bool:
	# bool is an int subclass; a payload with `true` timestamps is not a token
	if not isinstance(value, (int, float)) or isinstance(value, bool):
		return False
	# json.loads accepts Infinity and NaN
	return math.isfinite(value)


def parse_token(payload: str | bytes | dict) -> AttendanceToken:
	"""Return the token carried by a QR payload or raise MalformedToken."""
	if isinstance(payload, dict):
		data = payload
	else:
		if isinstance(payload, bytes):
			try:
				payload = payload.decode("utf-8")
			except UnicodeDecodeError as exc:
				raise MalformedToken() from exc
		try:
			data = json.loads(payload)
		except (TypeError, ValueError) as exc:
			raise MalformedToken() from exc

	if not isinstance(data, dict):
		raise MalformedToken()
	session_id = data.get("sessionId")
	issued_at = data.get("timestamp")
	expires_at = data.get("expiresAt")
	if not isinstance(session_id, str) or not session_id:
		raise MalformedToken("Invalid attendance code format.")
	if not _is_timestamp(issued_at) or not _is_timestamp(expires_at):
		raise MalformedToken("Invalid attendance code format.")
	return AttendanceToken(session_id=session_id, issued_at=int(issued_at), expires_at=int(expires_at))


class TokenValidator:
	"""Pure validation of scanned tokens; never touches the store."""

	def __init__(self, clock: Callable[[], int] = now_ms) -> None:
		self.clock = clock

	def validate(
		self,
		payload: str | bytes | dict,
		active_session_id: Optional[str],
		now: Optional[int] = None,
	) -> AttendanceToken:
		"""Return the decoded token if it is well formed, fresh and bound to the active session.

		Args:
			payload: Raw QR payload (JSON text) or an already decoded mapping.
			active_session_id: Id of the running session, None when idle.
			now: Optional override for the current time in milliseconds.

		Raises:
			MalformedToken: The payload is not a structurally valid token.
			ExpiredToken: The current time is past the token's expiry.
			SessionMismatch: The token belongs to another or a stopped session.
		"""
		token = parse_token(payload)
		current = self.clock() if now is None else now
		if current > token.expires_at:
			raise ExpiredToken()
		if active_session_id is None:
			raise SessionMismatch("No attendance session is running. Ask your presenter to start one.")
		if token.session_id != active_session_id:
			raise SessionMismatch()
		return token

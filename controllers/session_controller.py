"""Presenter session lifecycle handlers."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.responses import Response

from controllers.http_errors import to_http_exception
from models.errors import AttendanceError, SessionNotActive
from models.session_models import AttendanceToken, Reconciliation, RosterEntry, Session, SessionSnapshot
from services.attendance.qr_renderer import QRRenderer, token_payload_text
from services.attendance.session_manager import SessionController


def _controller(request: Request) -> SessionController:
	return request.app.state.session_controller


def serialize_session(session: Optional[Session]) -> Optional[Dict[str, Any]]:
	if session is None:
		return None
	return {"session_id": session.session_id, "started_at": session.started_at, "active": session.active}


def serialize_token(token: Optional[AttendanceToken], seconds_left: Optional[int]) -> Optional[Dict[str, Any]]:
	if token is None:
		return None
	return {
		"payload": token_payload_text(token),
		"session_id": token.session_id,
		"issued_at": token.issued_at,
		"expires_at": token.expires_at,
		"seconds_left": seconds_left,
	}


def serialize_roster_entry(entry: RosterEntry) -> Dict[str, Any]:
	return {"attendee_id": entry.attendee_id, "display_name": entry.display_name, "recorded_at": entry.recorded_at}


def serialize_reconciliation(rec: Optional[Reconciliation]) -> Optional[Dict[str, Any]]:
	if rec is None:
		return None
	return {
		"roster_size": rec.roster_size,
		"headcount": rec.headcount,
		"discrepancy": rec.discrepancy,
		"status": rec.status,
	}


def serialize_snapshot(snapshot: SessionSnapshot) -> Dict[str, Any]:
	return {
		"phase": snapshot.phase.value,
		"session": serialize_session(snapshot.session),
		"token": serialize_token(snapshot.token, snapshot.seconds_left),
		"roster": [serialize_roster_entry(e) for e in snapshot.roster],
		"headcount": snapshot.headcount.count,
		"reconciliation": serialize_reconciliation(snapshot.reconciliation),
	}


async def start_session(request: Request) -> Dict[str, Any]:
	"""Start a new attendance session and return its first token."""
	controller = _controller(request)
	try:
		session = await controller.start()
	except AttendanceError as exc:
		raise to_http_exception(exc) from exc
	return {
		"session": serialize_session(session),
		"token": serialize_token(controller.current_token, controller.seconds_left()),
	}


async def stop_session(request: Request) -> Dict[str, Any]:
	"""Stop the running session; the last roster stays available."""
	controller = _controller(request)
	try:
		session = await controller.stop()
	except AttendanceError as exc:
		raise to_http_exception(exc) from exc
	return {
		"session": serialize_session(session),
		"roster": [serialize_roster_entry(e) for e in controller.roster],
		"reconciliation": serialize_reconciliation(controller.reconcile()),
	}


async def get_snapshot(request: Request) -> Dict[str, Any]:
	controller = _controller(request)
	result = serialize_snapshot(controller.snapshot())
	attendees = await request.app.state.attendance_store.list_attendees()
	result["total_attendees"] = len(attendees)
	return result


async def get_token(request: Request) -> Dict[str, Any]:
	"""Return the token currently shown on the presenter screen."""
	controller = _controller(request)
	token = controller.current_token
	if token is None:
		raise to_http_exception(SessionNotActive())
	return serialize_token(token, controller.seconds_left())


async def get_token_png(request: Request) -> Response:
	"""Return the current token rendered as a PNG QR code."""
	controller = _controller(request)
	token = controller.current_token
	if token is None:
		raise to_http_exception(SessionNotActive())
	renderer: QRRenderer = request.app.state.qr_renderer
	png = renderer.render_token_png(token)
	return Response(content=png, media_type="image/png", headers={"Cache-Control": "no-store"})


async def get_roster(request: Request, refresh: bool = False) -> Dict[str, Any]:
	"""Return the published roster, optionally polling the store first."""
	controller = _controller(request)
	if refresh:
		try:
			await controller.refresh_roster()
		except AttendanceError as exc:
			raise to_http_exception(exc) from exc
	return {
		"session_id": controller.session.session_id if controller.session else None,
		"roster": [serialize_roster_entry(e) for e in controller.roster],
		"reconciliation": serialize_reconciliation(controller.reconcile()),
	}


async def record_headcount(request: Request, count: int) -> Dict[str, Any]:
	"""Store the presenter-confirmed headcount for the running session."""
	controller = _controller(request)
	try:
		result = controller.record_headcount(count)
	except AttendanceError as exc:
		raise to_http_exception(exc) from exc
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	return {
		"session_id": result.session_id,
		"headcount": result.count,
		"reconciliation": serialize_reconciliation(controller.reconcile()),
	}

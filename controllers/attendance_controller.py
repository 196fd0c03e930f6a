from fastapi import Request
from typing import Any, Dict

from controllers.http_errors import to_http_exception
from dal.attendance_dal import AttendanceStore
from models.attendance_record import AttendeeIdentity
from models.errors import AttendanceError, UnknownAttendee
from services.attendance.session_manager import SessionController
from services.camera.qr_decoder import decode_qr_image_bytes
from services.camera.scan_flow import AttendeeScanFlow


async def _require_attendee(store: AttendanceStore, attendee_id: str) -> AttendeeIdentity:
    attendee = await store.get_attendee(attendee_id)
    if attendee is None:
        raise UnknownAttendee()
    return attendee


async def submit_scan(request: Request, attendee_id: str, payload: str) -> Dict[str, Any]:
    """Validate a decoded QR payload and record the attendee.

    Args:
        request: FastAPI Request (used to access app.state for shared services).
        attendee_id: Id of the logged-in attendee.
        payload: Text decoded from the presenter's QR code.

    Returns:
        A dict with `status` ("recorded" or "already_recorded"), `message`
        and `session_id`.

    Raises:
        HTTPException carrying a user-facing message when the attendee is
        unknown, the code is rejected, or the store write fails.
    """
    store: AttendanceStore = request.app.state.attendance_store
    controller: SessionController = request.app.state.session_controller
    try:
        attendee = await _require_attendee(store, attendee_id)
        outcome = await controller.submit_scan(attendee.id, payload)
    except AttendanceError as exc:
        raise to_http_exception(exc) from exc
    return {
        "status": outcome.status,
        "message": outcome.message,
        "session_id": outcome.session_id,
        "attendee_id": outcome.attendee_id,
    }


async def submit_scan_image(request: Request, attendee_id: str, image_bytes: bytes) -> Dict[str, Any]:
    """Decode the QR code in an uploaded photo, then submit it like a live scan."""
    try:
        payload = decode_qr_image_bytes(image_bytes)
    except AttendanceError as exc:
        raise to_http_exception(exc) from exc
    return await submit_scan(request, attendee_id, payload)


async def list_attendees(request: Request) -> Dict[str, Any]:
    store: AttendanceStore = request.app.state.attendance_store
    attendees = await store.list_attendees()
    return {
        "attendees": [
            {"id": a.id, "display_name": a.display_name, "roll_key": a.roll_key} for a in attendees
        ],
        "total": len(attendees),
    }


async def capture_scan(request: Request, attendee_id: str) -> Dict[str, Any]:
    """Scan the presenter's QR code with the server's camera and record the attendee.

    Camera and scan problems come back as `success: False` with the message
    to show the attendee; only an unknown attendee is an HTTP error.
    """
    store: AttendanceStore = request.app.state.attendance_store
    controller: SessionController = request.app.state.session_controller
    try:
        attendee = await _require_attendee(store, attendee_id)
    except AttendanceError as exc:
        raise to_http_exception(exc) from exc
    flow = AttendeeScanFlow(
        controller.submit_scan,
        device_index=request.app.state.config.camera_index,
        capture_factory=getattr(request.app.state, "camera_factory", None),
    )
    result = await flow.scan(attendee.id)
    return {
        "success": result.success,
        "message": result.message,
        "status": result.outcome.status if result.outcome else None,
        "session_id": result.outcome.session_id if result.outcome else None,
    }

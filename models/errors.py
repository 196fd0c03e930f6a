"""Error taxonomy for the attendance core.

Every error carries a user-facing `message` and the HTTP status the
controllers translate it to.
"""

from __future__ import annotations

from typing import Optional


class AttendanceError(Exception):
    """Base class for recoverable attendance failures."""

    status_code = 400
    default_message = "Attendance request failed."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ScanRejected(AttendanceError):
    """A scanned code was rejected; the attendee may scan again."""


class MalformedToken(ScanRejected):
    default_message = "This is not a valid attendance QR code."


class ExpiredToken(ScanRejected):
    default_message = "This QR code has expired. Please scan the new one."


class SessionMismatch(ScanRejected):
    default_message = "This QR code does not belong to the current attendance session."


class CameraUnavailable(AttendanceError):
    status_code = 503
    default_message = "Could not access the camera. Please check permissions."


class OracleUnavailable(AttendanceError):
    status_code = 503
    default_message = "Headcount service is unavailable. Please try again."


class OracleMalformedResponse(AttendanceError):
    status_code = 502
    default_message = "Headcount service returned an unreadable answer. Please try again."


class StoreWriteFailure(AttendanceError):
    status_code = 503
    default_message = "Attendance could not be saved. It has NOT been recorded; please try again."


class SessionStateError(AttendanceError):
    status_code = 409


class SessionNotActive(SessionStateError):
    default_message = "No attendance session is running."


class SessionAlreadyActive(SessionStateError):
    default_message = "An attendance session is already running."


class UnknownAttendee(AttendanceError):
    status_code = 404
    default_message = "Attendee is not registered."


class InvalidCredentials(AttendanceError):
    status_code = 401
    default_message = "Invalid ID or password."

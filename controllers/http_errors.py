"""Translate attendance errors into HTTP responses."""

from fastapi import HTTPException

from models.errors import AttendanceError


def to_http_exception(exc: AttendanceError) -> HTTPException:
    """Return an HTTPException carrying the error's user-facing message."""
    return HTTPException(status_code=exc.status_code, detail=exc.message)

"""Fixed-credential login checks for presenters and attendees."""

import hmac
from typing import Any, Dict

from fastapi import Request

from controllers.http_errors import to_http_exception
from models.errors import InvalidCredentials
from utils.app_config import AppConfig


def _matches(given: str, expected: str) -> bool:
    return hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


async def login_presenter(request: Request, login_id: str, password: str) -> Dict[str, Any]:
    """Check the presenter against the configured credential pair."""
    config: AppConfig = request.app.state.config
    id_ok = _matches(login_id.strip(), config.presenter_login_id)
    password_ok = _matches(password, config.presenter_password)
    if not (id_ok and password_ok):
        raise to_http_exception(InvalidCredentials())
    return {"role": "presenter", "login_id": config.presenter_login_id}


async def login_attendee(request: Request, roll_key: str, password: str) -> Dict[str, Any]:
    """Look up the attendee by roll number and check the shared password."""
    config: AppConfig = request.app.state.config
    attendee = await request.app.state.attendance_store.find_attendee_by_roll_key(roll_key)
    if attendee is None:
        raise to_http_exception(InvalidCredentials("Invalid Roll Number."))
    if not _matches(password, config.attendee_password):
        raise to_http_exception(InvalidCredentials("Invalid password."))
    return {
        "role": "attendee",
        "attendee": {"id": attendee.id, "display_name": attendee.display_name, "roll_key": attendee.roll_key},
    }

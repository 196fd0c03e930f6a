from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from controllers.auth_controller import login_attendee, login_presenter

router = APIRouter(prefix="/auth", tags=["auth"])


class PresenterLogin(BaseModel):
    login_id: str
    password: str


class AttendeeLogin(BaseModel):
    roll_number: str
    password: str


@router.post("/presenter")
async def presenter_login_route(request: Request, payload: PresenterLogin):
    try:
        return await login_presenter(request, payload.login_id, payload.password)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/attendee")
async def attendee_login_route(request: Request, payload: AttendeeLogin):
    try:
        return await login_attendee(request, payload.roll_number, payload.password)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))

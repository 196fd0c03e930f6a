"""FastAPI routes for the presenter's attendance session."""

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from controllers.session_controller import (
	get_roster,
	get_snapshot,
	get_token,
	get_token_png,
	record_headcount,
	start_session,
	stop_session,
)

router = APIRouter(prefix="/sessions", tags=["sessions"])


class HeadcountPayload(BaseModel):
	count: int = Field(..., ge=0)


@router.post("")
async def start_session_route(request: Request):
	try:
		return await start_session(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/current")
async def snapshot_route(request: Request):
	try:
		return await get_snapshot(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/current/stop")
async def stop_session_route(request: Request):
	try:
		return await stop_session(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/current/token")
async def token_route(request: Request):
	try:
		return await get_token(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/current/token.png")
async def token_png_route(request: Request):
	"""Return the QR code for the current token."""
	try:
		return await get_token_png(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/current/roster")
async def roster_route(request: Request, refresh: bool = False):
	try:
		return await get_roster(request, refresh=refresh)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/current/headcount")
async def headcount_route(request: Request, payload: HeadcountPayload):
	try:
		return await record_headcount(request, payload.count)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))

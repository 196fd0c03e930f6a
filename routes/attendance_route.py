"""FastAPI routes for attendee scans."""

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel

from controllers.attendance_controller import capture_scan, list_attendees, submit_scan, submit_scan_image
from utils.media_validation import read_image_bytes

router = APIRouter(tags=["attendance"])


class ScanPayload(BaseModel):
    attendee_id: str
    payload: str


class CapturePayload(BaseModel):
    attendee_id: str


@router.post("/attendance/scan")
async def scan_route(request: Request, body: ScanPayload):
    """Record attendance from the text decoded out of the presenter's QR code."""
    try:
        return await submit_scan(request, body.attendee_id, body.payload)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/attendance/scan-image")
async def scan_image_route(request: Request, attendee_id: str = Form(...), image: UploadFile = File(...)):
    """Record attendance from a photo of the presenter's QR code."""
    try:
        image_bytes = await read_image_bytes(image)
        return await submit_scan_image(request, attendee_id, image_bytes)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/attendance/capture")
async def capture_route(request: Request, body: CapturePayload):
    """Record attendance by scanning the QR code with the server's camera."""
    try:
        return await capture_scan(request, body.attendee_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/attendees")
async def attendees_route(request: Request):
    try:
        return await list_attendees(request)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))

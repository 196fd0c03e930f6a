"""FastAPI routes for the photographic headcount."""

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel

from controllers.headcount_controller import capture_headcount, estimate_headcount
from utils.media_validation import ensure_base64_image, read_image_bytes, strip_data_url

router = APIRouter(prefix="/headcount", tags=["headcount"])


class HeadcountImage(BaseModel):
    imageData: str


@router.post("")
async def headcount_route(request: Request, payload: HeadcountImage):
    """Estimate the headcount for a base64-encoded JPEG frame."""
    try:
        return await estimate_headcount(request, strip_data_url(payload.imageData))
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/upload")
async def headcount_upload_route(request: Request, image: UploadFile = File(...)):
    """Estimate the headcount for an uploaded photo."""
    try:
        image_bytes = await read_image_bytes(image)
        return await estimate_headcount(request, ensure_base64_image(image_bytes))
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/capture")
async def headcount_capture_route(request: Request):
    """Estimate the headcount from the server's own camera."""
    try:
        return await capture_headcount(request)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))

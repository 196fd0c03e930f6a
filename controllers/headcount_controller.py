"""Headcount estimation handlers."""

from typing import Any, Dict

from fastapi import HTTPException, Request

from controllers.http_errors import to_http_exception
from models.errors import AttendanceError
from services.camera.headcount_flow import HeadcountFlow
from services.openai.headcount_oracle import HeadcountOracle


async def estimate_headcount(request: Request, image_b64: bytes) -> Dict[str, Any]:
    """Ask the oracle for a count of people in a base64 JPEG frame.

    The count is returned for the presenter to confirm; it is not recorded
    against the session here.
    """
    oracle: HeadcountOracle = request.app.state.headcount_oracle
    try:
        count = await oracle.estimate(image_b64)
    except AttendanceError as exc:
        raise to_http_exception(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"count": count}


async def capture_headcount(request: Request) -> Dict[str, Any]:
    """Capture a frame from the server's camera and estimate the headcount."""
    oracle: HeadcountOracle = request.app.state.headcount_oracle
    flow = HeadcountFlow(
        oracle,
        device_index=request.app.state.config.camera_index,
        capture_factory=getattr(request.app.state, "camera_factory", None),
    )
    try:
        count = await flow.capture_and_estimate()
    except AttendanceError as exc:
        raise to_http_exception(exc) from exc
    return {"count": count}

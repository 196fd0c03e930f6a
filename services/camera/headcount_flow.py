"""Presenter flow: capture one classroom frame and ask the headcount oracle."""
from __future__ import annotations

import asyncio
import base64
from typing import Any, Callable, Optional

import cv2
import numpy as np

from models.errors import CameraUnavailable
from services.camera.camera_stream import open_camera
from services.openai.headcount_oracle import HeadcountOracle

JPEG_QUALITY = 85


def encode_frame_b64(frame: np.ndarray, quality: int = JPEG_QUALITY) -> bytes:
	"""JPEG-encode a BGR frame and return it base64-encoded."""
	ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
	if not ok:
		raise CameraUnavailable("Could not encode the captured frame.")
	return base64.b64encode(buffer.tobytes())


class HeadcountFlow:
	"""Capture a still frame, release the camera, then estimate the headcount."""

	def __init__(
		self,
		oracle: HeadcountOracle,
		*,
		device_index: int = 0,
		capture_factory: Optional[Callable[[int], Any]] = None,
	) -> None:
		self.oracle = oracle
		self.device_index = device_index
		self.capture_factory = capture_factory

	async def capture_frame(self) -> bytes:
		async with open_camera(self.device_index, self.capture_factory) as camera:
			frame = await camera.read_frame()
		return await asyncio.to_thread(encode_frame_b64, frame)

	async def capture_and_estimate(self) -> int:
		"""Return the oracle's count for a freshly captured frame.

		Raises:
			CameraUnavailable, OracleUnavailable, OracleMalformedResponse
		"""
		image_b64 = await self.capture_frame()
		return await self.oracle.estimate(image_b64)

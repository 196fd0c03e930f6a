"""Attendee flow: find a QR code in the camera feed and submit it."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import numpy as np

from models.errors import AttendanceError, CameraUnavailable
from models.session_models import ScanOutcome
from services.camera.camera_stream import open_camera
from services.camera.qr_decoder import decode_qr_payload

logger = logging.getLogger(__name__)

SCAN_TIMEOUT_SECONDS = 60.0
FRAME_INTERVAL_SECONDS = 0.05


@dataclass(frozen=True)
class ScanResult:
	"""What the attendee sees after one scan attempt."""

	success: bool
	message: str
	outcome: Optional[ScanOutcome] = None


class AttendeeScanFlow:
	"""Scan with the device camera, then hand the payload to `submit`.

	Args:
		submit: Coroutine recording the scan, e.g. `SessionController.submit_scan`.
		device_index: OpenCV camera index.
		capture_factory: Optional replacement for `cv2.VideoCapture`.
		decoder: Frame -> QR text (or None) function.
	"""

	def __init__(
		self,
		submit: Callable[[str, str], Awaitable[ScanOutcome]],
		*,
		device_index: int = 0,
		capture_factory: Optional[Callable[[int], Any]] = None,
		decoder: Callable[[np.ndarray], Optional[str]] = decode_qr_payload,
		timeout: float = SCAN_TIMEOUT_SECONDS,
		frame_interval: float = FRAME_INTERVAL_SECONDS,
	) -> None:
		self.submit = submit
		self.device_index = device_index
		self.capture_factory = capture_factory
		self.decoder = decoder
		self.timeout = timeout
		self.frame_interval = frame_interval

	async def _read_payload(self) -> str:
		async with open_camera(self.device_index, self.capture_factory) as camera:
			while True:
				frame = await camera.read_frame()
				payload = self.decoder(frame)
				if payload:
					return payload
				await asyncio.sleep(self.frame_interval)

	async def scan(self, attendee_id: str) -> ScanResult:
		"""Run one scan attempt. The camera is released before the payload is submitted."""
		try:
			payload = await asyncio.wait_for(self._read_payload(), timeout=self.timeout)
		except asyncio.TimeoutError:
			return ScanResult(False, "No QR code detected. Please try again.")
		except CameraUnavailable as exc:
			return ScanResult(False, exc.message)

		try:
			outcome = await self.submit(attendee_id, payload)
		except AttendanceError as exc:
			logger.info("Scan by %s rejected: %s", attendee_id, exc.message)
			return ScanResult(False, exc.message)
		return ScanResult(True, outcome.message, outcome)

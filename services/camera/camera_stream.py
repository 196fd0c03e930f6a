"""Scoped access to a local camera through OpenCV."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional

import cv2
import numpy as np

from models.errors import CameraUnavailable

logger = logging.getLogger(__name__)


def _release_late_capture(opening: "asyncio.Future[Any]") -> None:
	if opening.cancelled() or opening.exception() is not None:
		return
	opening.result().release()
	logger.debug("Released camera opened after its caller was cancelled")


class CameraStream:
	"""Wrap a `cv2.VideoCapture`; blocking calls run in a worker thread.

	Prefer `open_camera()`, which guarantees `release()` on every exit path.
	"""

	def __init__(self, device_index: int = 0, capture_factory: Optional[Callable[[int], Any]] = None) -> None:
		self.device_index = device_index
		self._capture_factory = capture_factory or cv2.VideoCapture
		self._capture: Any = None

	@property
	def active(self) -> bool:
		return self._capture is not None

	async def open(self) -> None:
		if self._capture is not None:
			return
		opening = asyncio.ensure_future(asyncio.to_thread(self._capture_factory, self.device_index))
		try:
			capture = await asyncio.shield(opening)
		except asyncio.CancelledError:
			# The worker thread keeps running; release whatever it opens.
			opening.add_done_callback(_release_late_capture)
			raise
		except Exception as exc:  # pylint: disable=broad-exception-caught
			raise CameraUnavailable() from exc
		if not capture.isOpened():
			capture.release()
			raise CameraUnavailable("No camera found, or the camera is in use by another application.")
		self._capture = capture
		logger.debug("Camera %s opened", self.device_index)

	async def read_frame(self) -> np.ndarray:
		"""Return the next BGR frame."""
		if self._capture is None:
			raise CameraUnavailable("Camera is not open.")
		ok, frame = await asyncio.to_thread(self._capture.read)
		if not ok or frame is None:
			raise CameraUnavailable("The camera stopped delivering frames.")
		return frame

	async def release(self) -> None:
		capture, self._capture = self._capture, None
		if capture is None:
			return
		# Release synchronously so a cancelled caller cannot leave the device held.
		capture.release()
		logger.debug("Camera %s released", self.device_index)


@asynccontextmanager
async def open_camera(
	device_index: int = 0,
	capture_factory: Optional[Callable[[int], Any]] = None,
) -> AsyncIterator[CameraStream]:
	"""Yield an open camera and release it on success, error or cancellation."""
	stream = CameraStream(device_index, capture_factory)
	try:
		await stream.open()
		yield stream
	finally:
		await stream.release()

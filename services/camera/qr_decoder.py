"""Decode attendance QR codes from camera frames or uploaded photos."""
from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from models.errors import MalformedToken


def decode_qr_payload(frame: np.ndarray, detector: Optional[cv2.QRCodeDetector] = None) -> Optional[str]:
	"""Return the QR text found in a BGR frame, or None if no code is visible."""
	detector = detector or cv2.QRCodeDetector()
	text, points, _ = detector.detectAndDecode(frame)
	if points is None or not text:
		return None
	return text


def decode_qr_image_bytes(image_bytes: bytes) -> str:
	"""Decode the QR text in an encoded image (JPEG/PNG) or raise MalformedToken."""
	if not image_bytes:
		raise MalformedToken("Uploaded image is empty.")
	frame = cv2.imdecode(np.frombuffer(image_bytes, np.uint8), cv2.IMREAD_COLOR)
	if frame is None:
		raise MalformedToken("Uploaded file is not a readable image.")
	text = decode_qr_payload(frame)
	if text is None:
		raise MalformedToken("No attendance QR code found in the image.")
	return text

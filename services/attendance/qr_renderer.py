"""Render attendance tokens as QR code images.

The payload is the token's JSON wire form. Codes use the highest error
correction level, whole pixels per module, and are centered on a fixed
square canvas so the presenter screen stays stable across rotations.
"""
from __future__ import annotations

import io
import json

import qrcode
from PIL import Image

from models.session_models import AttendanceToken

QR_PIXEL_SIZE = 288
QR_BORDER_MODULES = 4


def token_payload_text(token: AttendanceToken) -> str:
    """Serialize a token into the compact JSON text carried by the QR code."""
    return json.dumps(token.to_payload(), separators=(",", ":"))


class QRRenderer:
    """Encode text into a PNG QR code of a fixed pixel size.

    Args:
        size: Width and height of the output image in pixels.
        border: Quiet-zone width in modules.
    """

    def __init__(self, size: int = QR_PIXEL_SIZE, border: int = QR_BORDER_MODULES) -> None:
        self.size = size
        self.border = border

    def render(self, text: str) -> Image.Image:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_H,
            box_size=1,
            border=self.border,
        )
        qr.add_data(text)
        qr.make(fit=True)
        # Every module must be the same whole number of pixels wide.
        span = qr.modules_count + 2 * self.border
        if span > self.size:
            raise ValueError(f"Payload is too long for a {self.size}px QR code.")
        qr.box_size = self.size // span
        img = qr.make_image(fill_color="black", back_color="white").get_image().convert("RGB")
        canvas = Image.new("RGB", (self.size, self.size), "white")
        offset = (self.size - img.size[0]) // 2
        canvas.paste(img, (offset, offset))
        return canvas

    def render_png(self, text: str) -> bytes:
        out_io = io.BytesIO()
        self.render(text).save(out_io, format="PNG", optimize=True)
        return out_io.getvalue()

    def render_token_png(self, token: AttendanceToken) -> bytes:
        return self.render_png(token_payload_text(token))

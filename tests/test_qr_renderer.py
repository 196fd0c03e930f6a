import io
import json

import pytest
from PIL import Image

from models.errors import MalformedToken
from services.attendance.qr_renderer import QR_PIXEL_SIZE, QRRenderer, token_payload_text
from services.attendance.session_manager import new_session_id
from services.attendance.token_minter import TokenMinter
from services.camera.qr_decoder import decode_qr_image_bytes


def test_png_has_fixed_size():
    png = QRRenderer().render_png("hello")
    with Image.open(io.BytesIO(png)) as img:
        assert img.size == (QR_PIXEL_SIZE, QR_PIXEL_SIZE)


def test_payload_text_is_compact_json():
    token = TokenMinter(clock=lambda: 5).mint("session-5-abcdefg")
    text = token_payload_text(token)
    assert " " not in text
    assert json.loads(text) == {"sessionId": "session-5-abcdefg", "timestamp": 5, "expiresAt": 30_005}


def test_every_rendered_token_decodes():
    renderer = QRRenderer()
    minter = TokenMinter()
    failures = []
    for i in range(200):
        now = 1_700_000_000_000 + i * 30_017
        token = minter.mint(new_session_id(now), now=now)
        expected = token_payload_text(token)
        try:
            decoded = decode_qr_image_bytes(renderer.render_token_png(token))
        except MalformedToken:
            decoded = None
        if decoded != expected:
            failures.append(expected)
    assert failures == []


def test_rejects_payload_that_cannot_fit():
    with pytest.raises(ValueError):
        QRRenderer(size=40).render("x" * 200)

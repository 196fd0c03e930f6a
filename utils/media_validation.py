"""Validation helpers for uploaded images."""

import base64
import binascii

from fastapi import HTTPException, UploadFile

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/bmp",
}

# Frames larger than this are rejected before reaching OpenCV or the oracle.
MAX_IMAGE_BYTES = 10 * 1024 * 1024


def ensure_base64_image(raw: bytes) -> bytes:
    """Return base64-encoded image bytes, encoding binary input when necessary."""
    try:
        raw.decode("utf-8")
        return raw
    except UnicodeDecodeError:
        return base64.b64encode(raw)


def strip_data_url(image_data: str) -> bytes:
    """Return the base64 body of `image_data`, dropping any `data:image/...;base64,` prefix.

    Raises:
        HTTPException(400): The payload is empty or not valid base64.
    """
    text = (image_data or "").strip()
    if text.startswith("data:") and "," in text:
        text = text.split(",", 1)[1]
    if not text:
        raise HTTPException(status_code=400, detail="imageData is required.")
    try:
        base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail="imageData must be base64-encoded.") from exc
    return text.encode("utf-8")


def validate_image_file(image_file: UploadFile) -> None:
    """Validate that the uploaded file looks like a supported image."""
    if image_file.content_type:
        content_type = image_file.content_type.lower().split(";", 1)[0].strip()
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise HTTPException(status_code=415, detail=f"Unsupported image content type: {image_file.content_type}")
    elif not image_file.filename or not any(
        image_file.filename.lower().endswith(ext) for ext in (".jpg", ".jpeg", ".png", ".webp", ".bmp")
    ):
        raise HTTPException(status_code=415, detail="Unsupported or missing image content type.")


async def read_image_bytes(image_file: UploadFile) -> bytes:
    """Read validated image bytes, ensuring the upload is not empty or oversized."""
    validate_image_file(image_file)
    image_bytes = await image_file.read()
    if not image_bytes:
        raise HTTPException(status_code=400, detail="Uploaded image is empty.")
    if len(image_bytes) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=413, detail="Uploaded image is too large.")
    return image_bytes

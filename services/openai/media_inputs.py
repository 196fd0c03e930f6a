"""Utilities to build image input payloads for the Responses API."""

from typing import Any, Dict, List


def to_image_data_url(image_b64: bytes) -> str:
    """Convert base64 JPEG bytes into a data URL suitable for vision input."""
    try:
        b64_str = image_b64.decode("utf-8")
    except Exception as exc:
        raise ValueError("Image bytes must be base64-encoded UTF-8.") from exc
    if not b64_str.strip():
        raise ValueError("Image payload is empty.")
    return f"data:image/jpeg;base64,{b64_str.strip()}"


def build_inputs(system_prompt: str, user_prompt: str, *, image_b64: bytes) -> List[Dict[str, Any]]:
    """Build the Responses API input array: system, instruction, then the frame."""
    return [
        {"type": "message", "role": "system", "content": [{"type": "input_text", "text": system_prompt}]},
        {"type": "message", "role": "user", "content": [{"type": "input_text", "text": user_prompt}]},
        {
            "type": "message",
            "role": "user",
            "content": [{"type": "input_image", "image_url": to_image_data_url(image_b64)}],
        },
    ]

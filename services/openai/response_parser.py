"""Helpers to parse Responses API outputs."""

import json
import re
from typing import Any, Dict, Optional

from models.errors import OracleMalformedResponse

_DIGITS = re.compile(r"^\d+$")


def parse_function_call(response: Any, *, tool_name: str) -> Dict[str, Any]:
    """Return the decoded arguments of the named function call."""
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) == "function_call" and getattr(item, "name", None) == tool_name:
            try:
                args = json.loads(getattr(item, "arguments", "{}") or "{}")
            except ValueError as exc:
                raise OracleMalformedResponse() from exc
            if not isinstance(args, dict):
                raise OracleMalformedResponse()
            return args
    raise OracleMalformedResponse(f"No function_call output for '{tool_name}' found in the headcount reply.")


def extract_text(response: Any) -> str:
    """Return the concatenated output text of a response."""
    text = getattr(response, "output_text", None)
    if text:
        return text
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for content in getattr(item, "content", None) or []:
            if getattr(content, "type", None) == "output_text":
                return getattr(content, "text", "") or ""
    return ""


def normalize_count(raw: Any) -> int:
    """Normalize a headcount reply into a non-negative integer.

    Accepts either a bare numeric text reply (``"12"``) or a structured
    object (``{"count": 12}``, as a mapping or JSON text). Anything else
    raises OracleMalformedResponse; nothing is coerced to zero.
    """
    if isinstance(raw, bool):
        raise OracleMalformedResponse()
    if isinstance(raw, int):
        if raw < 0:
            raise OracleMalformedResponse()
        return raw
    if isinstance(raw, dict):
        if "count" not in raw:
            raise OracleMalformedResponse()
        return normalize_count(raw["count"])
    if isinstance(raw, str):
        text = raw.strip()
        if _DIGITS.match(text):
            return int(text)
        if text.startswith("{"):
            try:
                decoded = json.loads(text)
            except ValueError as exc:
                raise OracleMalformedResponse() from exc
            if isinstance(decoded, dict):
                return normalize_count(decoded)
    raise OracleMalformedResponse()


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
    """Return token usage information from the response, if present."""
    usage = getattr(response, "usage", None)
    return {
        "input_tokens": getattr(usage, "input_tokens", None) if usage else None,
        "output_tokens": getattr(usage, "output_tokens", None) if usage else None,
    }

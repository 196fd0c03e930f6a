"""Description: Classroom headcount estimation using OpenAI's Responses API."""

import logging
import time
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from models.errors import OracleMalformedResponse, OracleUnavailable
from services.openai.headcount_prompts import build_system_prompt, build_user_prompt
from services.openai.headcount_schema import FUNCTION_DEFINITION, FUNCTION_NAME
from services.openai.media_inputs import build_inputs
from services.openai.response_parser import (
    extract_text,
    extract_usage,
    normalize_count,
    parse_function_call,
)

logger = logging.getLogger(__name__)

MODE_STRUCTURED = "structured"
MODE_TEXT = "text"


class HeadcountOracle:
    """Ask a vision model how many people are in a classroom frame.

    Args:
        client: Shared AsyncOpenAI client; None means the oracle is not configured
            and every call raises OracleUnavailable.
        model: Vision-capable model name.
        mode: "structured" forces a function call returning ``{"count": n}``;
            "text" asks for a bare integer reply.
    """

    def __init__(self, client: Optional[AsyncOpenAI], model: str = "gpt-4.1-mini", mode: str = MODE_STRUCTURED) -> None:
        if mode not in (MODE_STRUCTURED, MODE_TEXT):
            raise ValueError(f"Unsupported headcount mode '{mode}'.")
        self.client = client
        self.model = model
        self.mode = mode
        self.system_prompt = build_system_prompt()

    @property
    def available(self) -> bool:
        return self.client is not None

    async def estimate(self, image_b64: bytes) -> int:
        """Return the number of people in a base64-encoded JPEG frame.

        Raises:
            ValueError: The image payload is empty or not base64 text.
            OracleUnavailable: No client is configured or the API could not be reached.
            OracleMalformedResponse: The reply is neither a bare integer nor ``{"count": int}``.
        """
        if self.client is None:
            raise OracleUnavailable("Headcount is not configured on this server.")
        structured = self.mode == MODE_STRUCTURED
        inputs = build_inputs(self.system_prompt, build_user_prompt(structured), image_b64=image_b64)

        start_time = time.time()
        response = await self._create_response(inputs, structured)

        try:
            raw = parse_function_call(response, tool_name=FUNCTION_NAME) if structured else extract_text(response)
            count = normalize_count(raw)
        except OracleMalformedResponse:
            logger.error("Unreadable headcount reply: %r", response)
            raise
        usage = extract_usage(response)
        logger.info(
            "Headcount %d estimated in %.2fs (input_tokens=%s, output_tokens=%s)",
            count,
            time.time() - start_time,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return count

    async def _create_response(self, inputs: List[Dict[str, Any]], structured: bool) -> Any:
        """Send the request, translating transport and API errors."""
        kwargs: Dict[str, Any] = {"model": self.model, "input": inputs}
        if structured:
            kwargs["tools"] = [FUNCTION_DEFINITION]
            kwargs["tool_choice"] = {"type": "function", "name": FUNCTION_NAME}
        try:
            return await self.client.responses.create(**kwargs)
        except (openai.APIConnectionError, openai.APIStatusError) as exc:
            logger.error("Error during OpenAI Responses API call: %s", exc)
            raise OracleUnavailable() from exc

"""Schema definitions for the classroom headcount tool."""

from typing import Any, Dict

FUNCTION_NAME = "report_headcount"

FUNCTION_DEFINITION: Dict[str, Any] = {
    "type": "function",
    "name": FUNCTION_NAME,
    "description": "Report how many people are visible in the classroom photo.",
    "parameters": {
        "type": "object",
        "properties": {
            "count": {
                "type": "integer",
                "description": "Number of distinct people visible in the image. Zero if nobody is visible.",
                "minimum": 0,
            },
        },
        "required": ["count"],
        "additionalProperties": False,
    },
    "strict": True,
}

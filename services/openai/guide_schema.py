"""Structured-output schemas that constrain the guide model's JSON replies."""

from typing import Any, Dict, List

from models.guide_models import MAX_FOLLOWUP_SUGGESTIONS

INITIAL_SCHEMA_NAME = "ArtworkLabelSummary"
FOLLOW_UP_SCHEMA_NAME = "ArtworkFollowUpAnswer"

_SUGGESTIONS_PROPERTY: Dict[str, Any] = {
    "type": "array",
    "description": "Short follow-up questions the visitor might ask next.",
    "items": {"type": "string"},
    "minItems": 0,
    "maxItems": MAX_FOLLOWUP_SUGGESTIONS,
}


def build_response_format(name: str, properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    """Wrap an object schema in the chat completions `json_schema` response format."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": name,
            "schema": {
                "type": "object",
                "additionalProperties": False,
                "properties": properties,
                "required": required,
            },
            "strict": True,
        },
    }


INITIAL_RESPONSE_FORMAT: Dict[str, Any] = build_response_format(
    INITIAL_SCHEMA_NAME,
    {
        "label_text": {
            "type": "string",
            "description": "The exact text read from the label, or an empty string.",
        },
        "explanation": {
            "type": "string",
            "description": "A simplified explanation tailored to the requested audience.",
        },
        "followup_suggestions": _SUGGESTIONS_PROPERTY,
    },
    ["label_text", "explanation", "followup_suggestions"],
)

FOLLOW_UP_RESPONSE_FORMAT: Dict[str, Any] = build_response_format(
    FOLLOW_UP_SCHEMA_NAME,
    {
        "answer": {
            "type": "string",
            "description": "The guide's answer to the visitor's question.",
        },
        "followup_suggestions": _SUGGESTIONS_PROPERTY,
    },
    ["answer", "followup_suggestions"],
)

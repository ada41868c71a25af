"""Helpers to parse Chat Completions outputs into guide results."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from models.guide_models import MAX_FOLLOWUP_SUGGESTIONS, LabelResult

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextContent:
    """Message content delivered as a single string."""

    text: str


@dataclass(frozen=True)
class PartsContent:
    """Message content delivered as an ordered list of typed parts."""

    parts: Sequence[Any]


MessageContent = Union[TextContent, PartsContent]


def to_message_content(raw: Any) -> MessageContent:
    """Classify a raw message payload as text or parts.

    Anything that is neither a string nor a list/tuple is treated as an empty
    text payload.
    """
    if isinstance(raw, str):
        return TextContent(raw)
    if isinstance(raw, (list, tuple)):
        return PartsContent(tuple(raw))
    return TextContent("")


def _part_text(part: Any) -> str:
    if isinstance(part, dict):
        text = part.get("text")
    else:
        text = getattr(part, "text", None)
    return text if isinstance(text, str) else ""


def extract_content(raw: Any) -> str:
    """Return the textual content of a model message.

    Plain strings come back unchanged; for a list of parts the first non-empty
    `text` value wins. Returns an empty string when nothing textual is present.
    """
    content = to_message_content(raw)
    if isinstance(content, TextContent):
        return content.text
    for part in content.parts:
        text = _part_text(part)
        if text:
            return text
    return ""


def extract_message_content(completion: Any) -> Any:
    """Return `choices[0].message.content` from a chat completion, or None."""
    choices = getattr(completion, "choices", None)
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    return getattr(message, "content", None) if message is not None else None


def parse_structured(content: str) -> Optional[Dict[str, Any]]:
    """Decode a JSON object, returning None when the content is not one."""
    try:
        payload = json.loads(content)
    except (TypeError, ValueError):
        LOGGER.warning("Failed to parse JSON from model response")
        return None
    if not isinstance(payload, dict):
        LOGGER.warning("Model response JSON is a %s, expected an object", type(payload).__name__)
        return None
    return payload


def _clean_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _clean_suggestions(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    suggestions = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return suggestions[:MAX_FOLLOWUP_SUGGESTIONS]


def normalize_label_result(payload: Dict[str, Any]) -> LabelResult:
    """Build a LabelResult from a parsed initial-analysis payload."""
    return LabelResult(
        label_text=_clean_text(payload.get("label_text")),
        explanation=_clean_text(payload.get("explanation")),
        followup_suggestions=_clean_suggestions(payload.get("followup_suggestions")),
    )


def normalize_follow_up(payload: Dict[str, Any]) -> Tuple[str, List[str]]:
    """Return `(answer, suggestions)` from a parsed follow-up payload."""
    return _clean_text(payload.get("answer")), _clean_suggestions(payload.get("followup_suggestions"))


def extract_usage(completion: Any) -> Dict[str, Optional[int]]:
    """Return token usage information from the completion, if present."""
    usage = getattr(completion, "usage", None)
    return {
        "input_tokens": getattr(usage, "prompt_tokens", None) if usage else None,
        "output_tokens": getattr(usage, "completion_tokens", None) if usage else None,
    }

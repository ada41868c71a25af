"""Utilities to build chat messages for the guide model."""

from typing import Any, Dict, List


def build_initial_messages(system_prompt: str, user_prompt: str, image_data_url: str) -> List[Dict[str, Any]]:
    """Pair the analysis instructions with the label photo as a vision input."""
    return [
        {"role": "system", "content": system_prompt},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": user_prompt},
                {"type": "image_url", "image_url": {"url": image_data_url}},
            ],
        },
    ]


def build_follow_up_messages(system_prompt: str, user_prompt: str) -> List[Dict[str, Any]]:
    """Return a text-only exchange for a follow-up question."""
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]

"""Domain models for museum label sessions and their conversations."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import List, Literal, Optional

AudienceTone = Literal["kids", "general", "curious", "expert", "custom"]
ChatRole = Literal["user", "assistant"]

AUDIENCE_TONES = ("kids", "general", "curious", "expert", "custom")
MAX_FOLLOWUP_SUGGESTIONS = 3


@dataclass(frozen=True)
class CustomGuide:
    """User-supplied audience persona used with the `custom` tone."""

    name: str
    description: str

    def is_complete(self) -> bool:
        """Return True when both name and description carry visible text."""
        return bool(self.name and self.name.strip() and self.description and self.description.strip())


@dataclass
class LabelResult:
    """Outcome of a single label analysis.

    Attributes:
        label_text: Verbatim label transcription; empty when nothing was legible.
        explanation: Plain-English explanation in the requested tone.
        followup_suggestions: Up to three suggested visitor questions.
    """

    label_text: str
    explanation: str
    followup_suggestions: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ChatTurn:
    """One immutable message in a session conversation."""

    id: str
    role: ChatRole
    content: str
    created_at: float = field(default_factory=lambda: time.time())


@dataclass
class GuideSession:
    """In-memory record tying one label analysis to its follow-up conversation."""

    session_id: str
    tone: AudienceTone
    label_result: LabelResult
    custom_guide: Optional[CustomGuide] = None
    image_url: Optional[str] = None
    history: List[ChatTurn] = field(default_factory=list)


@dataclass
class StoredSession:
    """Session row plus ordered interactions as read back from the durable store."""

    tone: AudienceTone
    label_result: LabelResult
    image_url: Optional[str] = None
    custom_guide: Optional[CustomGuide] = None
    history: List[ChatTurn] = field(default_factory=list)


@dataclass(frozen=True)
class SideEffectResult:
    """Outcome of a best-effort collaborator call.

    Exactly one of `value` and `error` is meaningful: a failed call carries the
    exception, a successful one carries its value (which may itself be None for
    calls that only confirm completion).
    """

    value: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[str] = None) -> "SideEffectResult":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "SideEffectResult":
        return cls(error=error)


def make_turn(session_id: str, role: ChatRole, content: str, sequence: int, created_at: Optional[float] = None) -> ChatTurn:
    """Build a ChatTurn whose id is derived from session, role and sequence."""
    return ChatTurn(
        id=f"{session_id}-{role}-{sequence}",
        role=role,
        content=content,
        created_at=created_at if created_at is not None else time.time(),
    )

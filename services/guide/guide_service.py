"""Museum guide orchestration: label analysis and follow-up questions."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from openai import AsyncOpenAI

from models.guide_models import (
    AudienceTone,
    ChatRole,
    CustomGuide,
    LabelResult,
    SideEffectResult,
    make_turn,
)
from services.guide.errors import GuideValidationError, SessionNotFoundError, UpstreamParseError
from services.guide.session_store import SessionStore
from services.openai.guide_prompts import (
    FOLLOW_UP_SYSTEM_PROMPT,
    INITIAL_SYSTEM_PROMPT,
    build_follow_up_prompt,
    build_initial_prompt,
)
from services.openai.guide_schema import FOLLOW_UP_RESPONSE_FORMAT, INITIAL_RESPONSE_FORMAT
from services.openai.media_inputs import build_follow_up_messages, build_initial_messages
from services.openai.response_parser import (
    extract_content,
    extract_message_content,
    extract_usage,
    normalize_follow_up,
    normalize_label_result,
    parse_structured,
)
from utils.settings import DEFAULT_MODEL

LOGGER = logging.getLogger(__name__)
FOLLOW_UP_TEMPERATURE = 0.8
IMAGE_KEY_PREFIX = "labels"


class ImageStore(Protocol):
    async def upload_data_url(self, data_url: str, key_prefix: str) -> SideEffectResult:
        ...


class SessionRecorder(Protocol):
    async def record_session(
        self,
        session_id: str,
        tone: str,
        result: LabelResult,
        image_url: Optional[str],
        custom_guide: Optional[CustomGuide],
    ) -> None:
        ...

    async def record_interaction(self, session_id: str, role: ChatRole, content: str) -> Any:
        ...


@dataclass
class AnalyzeResult:
    session_id: str
    result: LabelResult
    image_url: Optional[str] = None


@dataclass
class FollowUpResult:
    answer: str
    followup_suggestions: List[str] = field(default_factory=list)


class GuideService:
    """Coordinate prompts, the OpenAI call, parsing and session bookkeeping."""

    def __init__(
        self,
        client: AsyncOpenAI,
        store: SessionStore,
        *,
        image_store: Optional[ImageStore] = None,
        recorder: Optional[SessionRecorder] = None,
        model: str = DEFAULT_MODEL,
    ) -> None:
        """Initialize the service with its collaborators.

        Args:
            client: Async OpenAI client used for every model call.
            store: Session store owned by this service.
            image_store: Optional object store for the uploaded label photo.
            recorder: Optional durable store for sessions and interactions.
            model: Chat model name.
        """
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.store = store
        self.image_store = image_store
        self.recorder = recorder
        self.model = model

    async def analyze(
        self,
        tone: AudienceTone,
        image_data_url: str,
        custom_guide: Optional[CustomGuide] = None,
    ) -> AnalyzeResult:
        """Read a label photo and explain it in the requested tone.

        Raises:
            GuideValidationError: If the custom tone lacks a complete custom guide.
            UpstreamParseError: If the model reply is not the expected JSON object.
        """
        if tone == "custom" and (custom_guide is None or not custom_guide.is_complete()):
            raise GuideValidationError("Custom guide name and description are required for the custom tone.")
        guide = custom_guide if tone == "custom" else None

        messages = build_initial_messages(
            INITIAL_SYSTEM_PROMPT, build_initial_prompt(tone, guide), image_data_url
        )
        payload = await self._complete(messages, INITIAL_RESPONSE_FORMAT)
        if payload is None:
            raise UpstreamParseError("Unable to parse response from OpenAI.")

        result = normalize_label_result(payload)
        image_url = await self._upload_image(image_data_url)
        session = self.store.create(tone, result, guide, image_url=image_url)
        LOGGER.info("Created guide session %s (tone=%s)", session.session_id, tone)

        if self.recorder is not None:
            await self._best_effort(
                "record session",
                self.recorder.record_session(session.session_id, tone, result, image_url, guide),
            )
            await self._best_effort(
                "record initial explanation",
                self.recorder.record_interaction(session.session_id, "assistant", result.explanation),
            )

        return AnalyzeResult(session_id=session.session_id, result=result, image_url=image_url)

    async def follow_up(self, session_id: str, question: str) -> FollowUpResult:
        """Answer a visitor question within an existing session.

        Raises:
            SessionNotFoundError: If neither the cache nor the durable store knows the id.
            UpstreamParseError: If the model reply is not the expected JSON object.
        """
        session = await self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        prompt = build_follow_up_prompt(
            session.tone,
            session.label_result.label_text,
            list(session.history),
            question,
            session.label_result.explanation,
            session.custom_guide,
        )
        payload = await self._complete(
            build_follow_up_messages(FOLLOW_UP_SYSTEM_PROMPT, prompt),
            FOLLOW_UP_RESPONSE_FORMAT,
            temperature=FOLLOW_UP_TEMPERATURE,
        )
        if payload is None:
            raise UpstreamParseError("Unable to parse follow-up response from OpenAI.")

        answer, suggestions = normalize_follow_up(payload)
        session.label_result.followup_suggestions = suggestions

        now = time.time()
        sequence = self.store.next_sequence(session_id)
        self.store.append(
            session_id,
            [
                make_turn(session_id, "user", question, sequence, created_at=now),
                make_turn(session_id, "assistant", answer, sequence + 1, created_at=now),
            ],
        )

        if self.recorder is not None:
            await self._best_effort(
                "record visitor question", self.recorder.record_interaction(session_id, "user", question)
            )
            await self._best_effort(
                "record guide answer", self.recorder.record_interaction(session_id, "assistant", answer)
            )

        return FollowUpResult(answer=answer, followup_suggestions=suggestions)

    async def _complete(
        self, messages: List[Dict[str, Any]], response_format: Dict[str, Any], **kwargs: Any
    ) -> Optional[Dict[str, Any]]:
        """Call the chat model and return its parsed JSON payload, or None."""
        start_time = time.time()
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                response_format=response_format,
                **kwargs,
            )
        except Exception as exc:
            LOGGER.error("Error during OpenAI chat completion call: %s", exc)
            raise

        usage = extract_usage(completion)
        LOGGER.info(
            "Guide model replied in %.2fs (input_tokens=%s, output_tokens=%s)",
            time.time() - start_time,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        content = extract_content(extract_message_content(completion))
        return parse_structured(content)

    async def _upload_image(self, image_data_url: str) -> Optional[str]:
        if self.image_store is None:
            return None
        try:
            outcome = await self.image_store.upload_data_url(image_data_url, IMAGE_KEY_PREFIX)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            outcome = SideEffectResult.failure(exc)
        if not outcome.ok:
            LOGGER.warning("Image upload failed: %s", outcome.error)
            return None
        return outcome.value

    async def _best_effort(self, action: str, call: Any) -> SideEffectResult:
        """Await a durable write, logging and discarding any failure."""
        try:
            await call
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.warning("Failed to %s: %s", action, exc)
            return SideEffectResult.failure(exc)
        return SideEffectResult.success()

"""In-memory store for guide sessions with optional durable hydration."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, Optional, Protocol
from uuid import uuid4

from models.guide_models import (
	AUDIENCE_TONES,
	AudienceTone,
	ChatTurn,
	CustomGuide,
	GuideSession,
	LabelResult,
	StoredSession,
	make_turn,
)

LOGGER = logging.getLogger(__name__)
FALLBACK_TONE = "general"


class SessionSource(Protocol):
	"""Durable collaborator consulted when a session is not cached."""

	async def fetch_session_with_history(self, session_id: str) -> Optional[StoredSession]:
		...


class SessionStore:
	"""Own guide sessions and their append-only chat history."""

	def __init__(self, source: Optional[SessionSource] = None) -> None:
		self._sessions: Dict[str, GuideSession] = {}
		self._lock = threading.Lock()
		self._source = source

	def create(
		self,
		tone: AudienceTone,
		label_result: LabelResult,
		custom_guide: Optional[CustomGuide] = None,
		image_url: Optional[str] = None,
	) -> GuideSession:
		"""Create a session seeded with the guide's initial explanation."""
		session_id = str(uuid4())
		state = GuideSession(
			session_id=session_id,
			tone=tone,
			label_result=label_result,
			custom_guide=custom_guide if tone == "custom" else None,
			image_url=image_url,
			history=[make_turn(session_id, "assistant", label_result.explanation, 0)],
		)
		with self._lock:
			self._sessions[session_id] = state
		return state

	async def get(self, session_id: str) -> Optional[GuideSession]:
		"""Return a cached session, hydrating from the durable store on a miss."""
		with self._lock:
			state = self._sessions.get(session_id)
		if state is not None or self._source is None:
			return state

		try:
			stored = await self._source.fetch_session_with_history(session_id)
		except Exception:  # pylint: disable=broad-exception-caught
			LOGGER.exception("Durable lookup failed for session %s", session_id)
			return None
		if stored is None:
			return None

		hydrated = self._hydrate(session_id, stored)
		with self._lock:
			# A concurrent request may have hydrated the same id first.
			return self._sessions.setdefault(session_id, hydrated)

	def append(self, session_id: str, turns: Iterable[ChatTurn]) -> None:
		"""Append turns to a session as one unit; unknown ids are ignored."""
		with self._lock:
			state = self._sessions.get(session_id)
			if state is None:
				LOGGER.debug("Dropping turns for unknown session %s", session_id)
				return
			state.history.extend(turns)

	def next_sequence(self, session_id: str) -> int:
		"""Return the sequence number the next appended turn should use."""
		with self._lock:
			state = self._sessions.get(session_id)
			return len(state.history) if state is not None else 0

	def __len__(self) -> int:
		with self._lock:
			return len(self._sessions)

	@staticmethod
	def _hydrate(session_id: str, stored: StoredSession) -> GuideSession:
		history = list(stored.history) or [
			make_turn(session_id, "assistant", stored.label_result.explanation, 0)
		]
		tone, custom_guide = stored.tone, stored.custom_guide
		if tone not in AUDIENCE_TONES or (
			tone == "custom" and (custom_guide is None or not custom_guide.is_complete())
		):
			LOGGER.warning("Stored session %s has unusable tone %r; using %r", session_id, tone, FALLBACK_TONE)
			tone, custom_guide = FALLBACK_TONE, None
		return GuideSession(
			session_id=session_id,
			tone=tone,
			label_result=stored.label_result,
			custom_guide=custom_guide if tone == "custom" else None,
			image_url=stored.image_url,
			history=history,
		)

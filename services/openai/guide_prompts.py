"""Prompt helpers for label analysis and follow-up conversations."""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from models.guide_models import AUDIENCE_TONES, AudienceTone, ChatTurn, CustomGuide
from services.guide.errors import GuideValidationError

TONE_DESCRIPTIONS: Dict[str, str] = {
	"kids": "Speak to a child around 10 years old. Be playful and use clear, short sentences.",
	"general": "Explain in plain English for a general adult audience. Avoid jargon and stay concise.",
	"curious": "Talk to a curious visitor. Offer plain-language insights, analogies, and cultural context.",
	"expert": "Address an art history enthusiast. Maintain clarity while respecting nuance and terminology.",
}

MISSING_LABEL_TEXT = "N/A"
EMPTY_HISTORY_TEXT = "(no follow-up questions yet)"

INITIAL_SYSTEM_PROMPT = (
	"You are a friendly museum guide helping visitors understand artwork labels.\n\n"
	"Return a JSON object with keys:\n"
	"- label_text: the exact text you can read from the label.\n"
	"- explanation: a simplified explanation tailored to the requested audience.\n"
	"- followup_suggestions: an array of up to 3 short follow-up question suggestions.\n\n"
	"If the label text is unclear or missing, set label_text to an empty string and explain briefly why."
)

FOLLOW_UP_SYSTEM_PROMPT = (
	"You are still the same museum guide. Keep answers grounded in the original label text and previous discussion.\n"
	"If unsure, say so rather than inventing details."
)


def describe_audience(tone: AudienceTone, custom_guide: Optional[CustomGuide] = None) -> str:
	"""Return the audience profile text for a tone.

	Raises:
		GuideValidationError: If the tone is unknown, or is `custom` without a
			complete custom guide.
	"""
	if tone == "custom":
		if custom_guide is None or not custom_guide.is_complete():
			raise GuideValidationError("Custom guide name and description are required for the custom tone.")
		return (
			f'Speak in the voice of the custom guide "{custom_guide.name.strip()}". '
			f"{custom_guide.description.strip()}"
		)
	if tone not in TONE_DESCRIPTIONS:
		raise GuideValidationError(f"Unknown tone {tone!r}; expected one of {', '.join(AUDIENCE_TONES)}.")
	return TONE_DESCRIPTIONS[tone]


def build_initial_prompt(tone: AudienceTone, custom_guide: Optional[CustomGuide] = None) -> str:
	"""Return the user prompt sent alongside the label photo."""
	return (
		f"Audience profile: {describe_audience(tone, custom_guide)}\n\n"
		"Tasks:\n"
		"1. Transcribe the label text verbatim.\n"
		"2. Summarize the artwork in the requested voice.\n"
		"3. Offer 2-3 follow-up questions the visitor might ask next."
	)


def format_history(history: Iterable[ChatTurn]) -> str:
	"""Render the conversation as Guide/Visitor lines in chronological order."""
	lines = [
		f"{'Guide' if turn.role == 'assistant' else 'Visitor'}: {turn.content}"
		for turn in history
	]
	return "\n".join(lines)


def build_follow_up_prompt(
	tone: AudienceTone,
	label_text: str,
	history: Iterable[ChatTurn],
	question: str,
	explanation: str,
	custom_guide: Optional[CustomGuide] = None,
) -> str:
	"""Return the user prompt that grounds a follow-up answer in the session so far."""
	prior_explanation = f'Guide\'s earlier explanation:\n"""{explanation}"""\n\n' if explanation else ""
	conversation = format_history(history) or EMPTY_HISTORY_TEXT
	return (
		f"Audience profile: {describe_audience(tone, custom_guide)}\n\n"
		f'Original label text:\n"""{label_text or MISSING_LABEL_TEXT}"""\n\n'
		f"{prior_explanation}"
		f"Conversation so far:\n{conversation}\n\n"
		f"Visitor now asks: {question}"
	)

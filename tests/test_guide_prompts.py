import pytest

from models.guide_models import CustomGuide, make_turn
from services.guide.errors import GuideValidationError
from services.openai.guide_prompts import (
    EMPTY_HISTORY_TEXT,
    TONE_DESCRIPTIONS,
    build_follow_up_prompt,
    build_initial_prompt,
)
from services.openai.guide_schema import FOLLOW_UP_RESPONSE_FORMAT, INITIAL_RESPONSE_FORMAT


@pytest.mark.parametrize("tone", ["kids", "general", "curious", "expert"])
def test_initial_prompt_embeds_tone_description(tone):
    prompt = build_initial_prompt(tone)
    assert TONE_DESCRIPTIONS[tone] in prompt
    assert prompt.startswith("Audience profile:")


def test_initial_prompt_uses_custom_guide_text():
    guide = CustomGuide(name="Pirate Pete", description="Talk like a cheerful pirate captain.")
    prompt = build_initial_prompt("custom", guide)
    assert "Pirate Pete" in prompt
    assert "Talk like a cheerful pirate captain." in prompt
    for description in TONE_DESCRIPTIONS.values():
        assert description not in prompt


@pytest.mark.parametrize(
    "guide",
    [
        None,
        CustomGuide(name="", description="x"),
        CustomGuide(name="Pete", description="   "),
        CustomGuide(name=" \t", description="Talk like a pirate."),
    ],
)
def test_custom_tone_requires_name_and_description(guide):
    with pytest.raises(GuideValidationError):
        build_initial_prompt("custom", guide)


def test_follow_up_prompt_renders_history_in_order():
    history = [
        make_turn("s1", "assistant", "A famous smiling painting.", 0),
        make_turn("s1", "user", "Why is she smiling?", 1),
        make_turn("s1", "assistant", "No one truly knows!", 2),
    ]
    prompt = build_follow_up_prompt(
        "kids", "Mona Lisa, 1503", history, "Who painted it?", "A famous smiling painting."
    )

    assert TONE_DESCRIPTIONS["kids"] in prompt
    assert '"""Mona Lisa, 1503"""' in prompt
    assert "Guide's earlier explanation" in prompt
    conversation = (
        "Guide: A famous smiling painting.\n"
        "Visitor: Why is she smiling?\n"
        "Guide: No one truly knows!"
    )
    assert conversation in prompt
    assert prompt.endswith("Visitor now asks: Who painted it?")


def test_follow_up_prompt_placeholders_for_missing_context():
    prompt = build_follow_up_prompt("general", "", [], "What is this?", "")
    assert '"""N/A"""' in prompt
    assert "earlier explanation" not in prompt
    assert EMPTY_HISTORY_TEXT in prompt


def test_schemas_require_every_field():
    initial = INITIAL_RESPONSE_FORMAT["json_schema"]
    assert initial["strict"] is True
    assert initial["schema"]["required"] == ["label_text", "explanation", "followup_suggestions"]
    assert initial["schema"]["properties"]["followup_suggestions"]["maxItems"] == 3

    follow_up = FOLLOW_UP_RESPONSE_FORMAT["json_schema"]["schema"]
    assert follow_up["required"] == ["answer", "followup_suggestions"]
    assert follow_up["additionalProperties"] is False

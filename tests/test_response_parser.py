from types import SimpleNamespace

from services.openai.response_parser import (
    PartsContent,
    TextContent,
    extract_content,
    extract_message_content,
    normalize_follow_up,
    normalize_label_result,
    parse_structured,
    to_message_content,
)


def test_extract_content_plain_string_unchanged():
    assert extract_content('{"answer": "hi"}') == '{"answer": "hi"}'


def test_extract_content_from_parts():
    assert extract_content([{"type": "text", "text": "X"}]) == "X"
    assert extract_content([SimpleNamespace(type="text", text="Y")]) == "Y"


def test_extract_content_skips_parts_without_text():
    parts = [{"type": "image_url", "image_url": {"url": "..."}}, {"type": "text", "text": "second"}]
    assert extract_content(parts) == "second"
    assert extract_content([{"type": "refusal", "refusal": "no"}]) == ""
    assert extract_content(None) == ""


def test_to_message_content_variants():
    assert to_message_content("abc") == TextContent("abc")
    assert isinstance(to_message_content([{"text": "a"}]), PartsContent)
    assert to_message_content(42) == TextContent("")


def test_extract_message_content_tolerates_missing_choices():
    assert extract_message_content(SimpleNamespace(choices=[])) is None
    completion = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="ok"))])
    assert extract_message_content(completion) == "ok"


def test_parse_structured_returns_none_on_invalid_json():
    assert parse_structured("not json {") is None
    assert parse_structured("") is None
    assert parse_structured("[1, 2]") is None


def test_parse_structured_defaults_missing_fields():
    payload = parse_structured('{"label_text": "  Mona Lisa  ", "explanation": "Smiles."}')
    result = normalize_label_result(payload)
    assert result.label_text == "Mona Lisa"
    assert result.explanation == "Smiles."
    assert result.followup_suggestions == []


def test_normalize_drops_falsy_suggestions_and_caps_at_three():
    answer, suggestions = normalize_follow_up(
        {"answer": " Yes ", "followup_suggestions": ["a", "", None, "b", "c", "d"]}
    )
    assert answer == "Yes"
    assert suggestions == ["a", "b", "c"]


def test_normalize_missing_explanation_is_empty():
    result = normalize_label_result({})
    assert result.label_text == ""
    assert result.explanation == ""

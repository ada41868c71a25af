from unittest.mock import AsyncMock

import pytest

from models.guide_models import CustomGuide, SideEffectResult
from services.guide.errors import GuideValidationError, SessionNotFoundError, UpstreamParseError
from services.guide.guide_service import GuideService
from services.openai.guide_schema import FOLLOW_UP_RESPONSE_FORMAT, INITIAL_RESPONSE_FORMAT

from tests.fakes import LABEL_PHOTO, make_completion

INITIAL_REPLY = {
    "label_text": "Mona Lisa, 1503",
    "explanation": "A famous smiling painting.",
    "followup_suggestions": ["Why is she smiling?", "", "Who painted it?"],
}


@pytest.mark.asyncio
async def test_analyze_creates_session(service, openai_client, store):
    openai_client.chat.completions.create.return_value = make_completion(INITIAL_REPLY)

    outcome = await service.analyze("kids", LABEL_PHOTO)

    assert outcome.result.label_text == "Mona Lisa, 1503"
    assert outcome.result.followup_suggestions == ["Why is she smiling?", "Who painted it?"]
    assert outcome.image_url is None

    kwargs = openai_client.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["response_format"] is INITIAL_RESPONSE_FORMAT
    user_parts = kwargs["messages"][1]["content"]
    assert user_parts[1] == {"type": "image_url", "image_url": {"url": LABEL_PHOTO}}

    session = await store.get(outcome.session_id)
    assert [(t.role, t.content) for t in session.history] == [("assistant", "A famous smiling painting.")]


@pytest.mark.asyncio
async def test_analyze_custom_tone_with_blank_name_makes_no_call(service, openai_client, store):
    with pytest.raises(GuideValidationError):
        await service.analyze("custom", LABEL_PHOTO, CustomGuide(name="", description="x"))

    openai_client.chat.completions.create.assert_not_awaited()
    assert len(store) == 0


@pytest.mark.asyncio
async def test_analyze_reads_content_parts(service, openai_client):
    openai_client.chat.completions.create.return_value = make_completion(
        [{"type": "text", "text": '{"label_text": "", "explanation": "Too blurry to read."}'}]
    )
    outcome = await service.analyze("general", LABEL_PHOTO)
    assert outcome.result.label_text == ""
    assert outcome.result.explanation == "Too blurry to read."
    assert outcome.result.followup_suggestions == []


@pytest.mark.asyncio
async def test_analyze_unparseable_reply_raises_and_stores_nothing(service, openai_client, store):
    openai_client.chat.completions.create.return_value = make_completion("Sorry, I cannot help.")
    with pytest.raises(UpstreamParseError):
        await service.analyze("general", LABEL_PHOTO)
    assert len(store) == 0


@pytest.mark.asyncio
async def test_analyze_propagates_client_errors(service, openai_client):
    openai_client.chat.completions.create.side_effect = RuntimeError("network down")
    with pytest.raises(RuntimeError):
        await service.analyze("general", LABEL_PHOTO)


@pytest.mark.asyncio
async def test_follow_up_appends_turns_and_replaces_suggestions(service, openai_client, store):
    openai_client.chat.completions.create.return_value = make_completion(INITIAL_REPLY)
    outcome = await service.analyze("kids", LABEL_PHOTO)

    openai_client.chat.completions.create.return_value = make_completion(
        {"answer": "No one truly knows!", "followup_suggestions": ["Where is it now?"]}
    )
    reply = await service.follow_up(outcome.session_id, "Why is she smiling?")

    assert reply.answer == "No one truly knows!"
    assert reply.followup_suggestions == ["Where is it now?"]

    kwargs = openai_client.chat.completions.create.await_args.kwargs
    assert kwargs["response_format"] is FOLLOW_UP_RESPONSE_FORMAT
    assert kwargs["temperature"] == 0.8
    assert kwargs["messages"][1]["content"].endswith("Visitor now asks: Why is she smiling?")

    session = await store.get(outcome.session_id)
    assert [(t.role, t.content) for t in session.history] == [
        ("assistant", "A famous smiling painting."),
        ("user", "Why is she smiling?"),
        ("assistant", "No one truly knows!"),
    ]
    assert len({t.id for t in session.history}) == 3
    assert session.label_result.followup_suggestions == ["Where is it now?"]


@pytest.mark.asyncio
async def test_follow_up_unknown_session_makes_no_call(service, openai_client):
    with pytest.raises(SessionNotFoundError):
        await service.follow_up("does-not-exist", "Hello?")
    openai_client.chat.completions.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_follow_up_unparseable_reply_leaves_history(service, openai_client, store):
    openai_client.chat.completions.create.return_value = make_completion(INITIAL_REPLY)
    outcome = await service.analyze("kids", LABEL_PHOTO)

    openai_client.chat.completions.create.return_value = make_completion("{broken")
    with pytest.raises(UpstreamParseError):
        await service.follow_up(outcome.session_id, "Why?")
    assert len((await store.get(outcome.session_id)).history) == 1


@pytest.mark.asyncio
async def test_best_effort_collaborators_do_not_fail_requests(openai_client, store):
    image_store = AsyncMock()
    image_store.upload_data_url.return_value = SideEffectResult.failure(OSError("disk full"))
    recorder = AsyncMock()
    recorder.record_session.side_effect = RuntimeError("db down")
    recorder.record_interaction.side_effect = RuntimeError("db down")
    service = GuideService(openai_client, store, image_store=image_store, recorder=recorder)

    openai_client.chat.completions.create.return_value = make_completion(INITIAL_REPLY)
    outcome = await service.analyze("general", LABEL_PHOTO)
    assert outcome.image_url is None

    openai_client.chat.completions.create.return_value = make_completion({"answer": "Sure."})
    reply = await service.follow_up(outcome.session_id, "Tell me more")
    assert reply.answer == "Sure."
    assert recorder.record_interaction.await_count == 3


@pytest.mark.asyncio
async def test_analyze_records_session_and_image_url(openai_client, store):
    image_store = AsyncMock()
    image_store.upload_data_url.return_value = SideEffectResult.success("/uploads/labels/1.jpg")
    recorder = AsyncMock()
    service = GuideService(openai_client, store, image_store=image_store, recorder=recorder)
    guide = CustomGuide("Pete", "Pirate voice.")

    openai_client.chat.completions.create.return_value = make_completion(INITIAL_REPLY)
    outcome = await service.analyze("custom", LABEL_PHOTO, guide)

    assert outcome.image_url == "/uploads/labels/1.jpg"
    recorder.record_session.assert_awaited_once_with(
        outcome.session_id, "custom", outcome.result, "/uploads/labels/1.jpg", guide
    )
    recorder.record_interaction.assert_awaited_once_with(
        outcome.session_id, "assistant", "A famous smiling painting."
    )
    assert "Pirate voice." in openai_client.chat.completions.create.await_args.kwargs["messages"][1]["content"][0]["text"]

"""Controller for the museum guide analyze and follow-up requests."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import HTTPException, Request
from pydantic import ValidationError

from services.guide.errors import GuideValidationError, SessionNotFoundError, UpstreamParseError
from services.guide.guide_service import GuideService
from utils.validators import AnalyzePayload, FollowUpPayload

LOGGER = logging.getLogger(__name__)

GENERIC_FAILURE = "Something went wrong while talking to the museum guide."
SESSION_NOT_FOUND = "Session not found. Please rescan the label."


def _get_guide_service(request: Request) -> GuideService:
    """Retrieve the shared guide service from the app state."""
    service = getattr(request.app.state, "guide_service", None)
    if service is None:
        raise HTTPException(status_code=500, detail=GENERIC_FAILURE)
    return service


def _validation_detail(exc: ValidationError) -> Any:
    return [
        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]


async def analyze_label(request: Request, body: Any) -> Dict[str, Any]:
    """Validate an analyze request and run it through the guide service.

    Returns:
        `{sessionId, result: {labelText, explanation, followupSuggestions}, imageUrl}`.

    Raises:
        HTTPException: 400 for invalid input, 502 for unparseable model output,
            500 for anything unexpected.
    """
    try:
        payload = AnalyzePayload.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_validation_detail(exc)) from exc

    service = _get_guide_service(request)
    custom_guide = payload.custom_guide.to_model() if payload.custom_guide else None
    try:
        outcome = await service.analyze(payload.tone, payload.image_base64, custom_guide)
    except GuideValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except UpstreamParseError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except Exception as exc:  # pylint: disable=broad-exception-caught
        LOGGER.exception("Unexpected error while analyzing a label")
        raise HTTPException(status_code=500, detail=GENERIC_FAILURE) from exc

    return {
        "sessionId": outcome.session_id,
        "result": {
            "labelText": outcome.result.label_text,
            "explanation": outcome.result.explanation,
            "followupSuggestions": outcome.result.followup_suggestions,
        },
        "imageUrl": outcome.image_url,
    }


async def ask_follow_up(request: Request, body: Any) -> Dict[str, Any]:
    """Validate a follow-up request and answer it within its session.

    Returns:
        `{answer, followupSuggestions}`.

    Raises:
        HTTPException: 400 for invalid input, 404 for an unknown session, 502
            for unparseable model output, 500 for anything unexpected.
    """
    try:
        payload = FollowUpPayload.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_validation_detail(exc)) from exc

    service = _get_guide_service(request)
    try:
        outcome = await service.follow_up(payload.session_id, payload.question)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=SESSION_NOT_FOUND) from exc
    except UpstreamParseError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except Exception as exc:  # pylint: disable=broad-exception-caught
        LOGGER.exception("Unexpected error while answering a follow-up question")
        raise HTTPException(status_code=500, detail=GENERIC_FAILURE) from exc

    return {"answer": outcome.answer, "followupSuggestions": outcome.followup_suggestions}

"""FastAPI routes for the museum guide."""

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from controllers.guide_controller import analyze_label, ask_follow_up

router = APIRouter(prefix="/api/guide", tags=["guide"])


async def _read_json(request: Request) -> Any:
    """Return the decoded JSON body or raise a 400."""
    try:
        return await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON.") from exc


@router.post("/analyze", summary="Explain a photographed museum label")
async def analyze_route(request: Request):
    return await analyze_label(request, await _read_json(request))


@router.post("/follow-up", summary="Ask a follow-up question about a scanned label")
async def follow_up_route(request: Request):
    return await ask_follow_up(request, await _read_json(request))

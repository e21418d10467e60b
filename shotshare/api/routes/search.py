"""Search API routes."""
from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from shotshare.api.dependencies import get_grounded_model, get_search_service
from shotshare.clients import GroundedModelClient
from shotshare.models.schemas import PostResponse, SearchRequest, SearchResponse
from shotshare.services import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search")


def to_sse(payload: dict) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


@router.post("/stream")
async def stream_search(
    request: SearchRequest,
    model: GroundedModelClient = Depends(get_grounded_model)
):
    """
    Stream a grounded answer as server-sent events.

    Frames are ``data: {"type": "text", "content": ...}`` while the answer
    is generated, then exactly one ``{"type": "done", "postIds": [...],
    "conversationId": ...}`` or ``{"type": "error", "message": ...}``.
    """
    search_service = SearchService(model)

    async def generate():
        events = search_service.stream_search(request.query, request.conversation_history)
        try:
            async for event in events:
                yield to_sse(event.to_payload())
        finally:
            await events.aclose()

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"
        }
    )


@router.post("", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    search_service: SearchService = Depends(get_search_service)
):
    """
    Run a grounded search to completion.

    Falls back to the most recent posts when the answer cites none.
    """
    result = await search_service.search(request.query, request.conversation_history)
    return SearchResponse(
        posts=[PostResponse.from_post(p) for p in result.posts],
        ai_response=result.ai_response,
        conversation_id=result.conversation_id,
        fallback=result.fallback
    )

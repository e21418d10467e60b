"""Health check endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text

from shotshare.api.dependencies import get_indexing_dispatcher, get_similarity_cache
from shotshare.core.database import engine
from shotshare.services import IndexingDispatcher, SimilarityCache

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
    cache: str
    pending_indexing: int


@router.get("/health", response_model=HealthResponse)
async def health_check(
    dispatcher: IndexingDispatcher = Depends(get_indexing_dispatcher),
    cache: SimilarityCache = Depends(get_similarity_cache)
):
    """
    Health check endpoint.

    The cache is optional: when Redis is down, similar posts are recomputed
    on every request, so only the database decides overall status.
    """
    # Check database
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception:
        db_status = "unhealthy"

    # Check cache
    cache_status = "healthy" if await cache.ping() else "unavailable"

    # Overall status
    status = "healthy" if db_status == "healthy" else "unhealthy"

    return HealthResponse(
        status=status,
        database=db_status,
        cache=cache_status,
        pending_indexing=dispatcher.pending
    )

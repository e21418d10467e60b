"""Dependency injection for FastAPI routes."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from shotshare.caption_generators import get_caption_generator
from shotshare.clients import FileSearchIndexClient, GeminiGroundedModel, GroundedModelClient
from shotshare.core.config import settings
from shotshare.core.database import AsyncSessionLocal, get_db
from shotshare.core.redis import redis_client
from shotshare.embedding_generators import get_embedding_generator
from shotshare.services import (
    DocumentIndexer,
    IndexingDispatcher,
    IndexingPipeline,
    PostService,
    SearchService,
    SimilarityCache,
    SimilarityService,
    StorageService,
)


# Singleton service instances
_storage_service: StorageService | None = None
_similarity_cache: SimilarityCache | None = None
_indexing_dispatcher: IndexingDispatcher | None = None
_indexing_pipeline: IndexingPipeline | None = None
_grounded_model: GroundedModelClient | None = None


def get_storage_service() -> StorageService:
    """Get storage service (singleton)."""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service


def get_similarity_cache() -> SimilarityCache:
    """Get similarity cache (singleton)."""
    global _similarity_cache
    if _similarity_cache is None:
        _similarity_cache = SimilarityCache(redis_client)
    return _similarity_cache


def get_indexing_dispatcher() -> IndexingDispatcher:
    """Get the background indexing task runner (singleton)."""
    global _indexing_dispatcher
    if _indexing_dispatcher is None:
        _indexing_dispatcher = IndexingDispatcher()
    return _indexing_dispatcher


def get_indexing_pipeline() -> IndexingPipeline:
    """Get the detached indexing phase (singleton)."""
    global _indexing_pipeline
    if _indexing_pipeline is None:
        _indexing_pipeline = IndexingPipeline(
            session_factory=AsyncSessionLocal,
            caption_generator=get_caption_generator(settings.caption_generator),
            embedding_generator=get_embedding_generator(settings.embedding_provider),
            indexer=DocumentIndexer(FileSearchIndexClient())
        )
    return _indexing_pipeline


def get_grounded_model() -> GroundedModelClient:
    """Get the grounded search model (singleton)."""
    global _grounded_model
    if _grounded_model is None:
        _grounded_model = GeminiGroundedModel()
    return _grounded_model


def _parse_user_id(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="X-User-Id must be a UUID")


async def get_requester_id(
    x_user_id: Optional[str] = Header(default=None)
) -> UUID:
    """Authenticated user id, set by the auth proxy in front of the API."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return _parse_user_id(x_user_id)


async def get_optional_requester_id(
    x_user_id: Optional[str] = Header(default=None)
) -> Optional[UUID]:
    return _parse_user_id(x_user_id) if x_user_id else None


# Request-scoped services (get fresh instances with DB session)


async def get_post_service(
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
    cache: SimilarityCache = Depends(get_similarity_cache),
    pipeline: IndexingPipeline = Depends(get_indexing_pipeline),
    dispatcher: IndexingDispatcher = Depends(get_indexing_dispatcher),
) -> PostService:
    """Get post service."""
    return PostService(db, storage, cache, pipeline, dispatcher)


async def get_search_service(
    db: AsyncSession = Depends(get_db),
    model: GroundedModelClient = Depends(get_grounded_model),
) -> SearchService:
    """Get search service."""
    return SearchService(model, db)


async def get_similarity_service(
    db: AsyncSession = Depends(get_db),
    cache: SimilarityCache = Depends(get_similarity_cache),
) -> SimilarityService:
    """Get similarity service."""
    return SimilarityService(db, cache)

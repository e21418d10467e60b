"""Post API routes."""
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from shotshare.api.dependencies import (
    get_optional_requester_id,
    get_post_service,
    get_requester_id,
    get_similarity_service,
)
from shotshare.core.config import settings
from shotshare.core.exceptions import EmbeddingUnavailable, ValidationException
from shotshare.models.schemas import (
    MessageResponse,
    OffsetPaginationParams,
    PostEnvelope,
    PostListResponse,
    PostResponse,
    SimilarPostsResponse,
)
from shotshare.services import PostService, SimilarityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts")

MAX_PAGE_SIZE = 100
MAX_SIMILAR_LIMIT = 50


@router.post("", response_model=PostListResponse)
async def list_posts(
    params: Optional[OffsetPaginationParams] = None,
    post_service: PostService = Depends(get_post_service)
):
    """
    List public posts, newest first.

    **Body:**
    - **limit**: Number of posts to return (1-100, default 20)
    - **offset**: Number of posts to skip (default 0)
    """
    params = params or OffsetPaginationParams()
    if params.limit < 1 or params.limit > MAX_PAGE_SIZE:
        raise ValidationException(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if params.offset < 0:
        raise ValidationException("offset must be 0 or greater")

    posts = await post_service.list_posts(limit=params.limit, offset=params.offset)

    return PostListResponse(
        data=[PostResponse.from_post(p) for p in posts],
        limit=params.limit,
        offset=params.offset
    )


@router.post("/upload", response_model=PostEnvelope, status_code=201)
async def upload_post(
    file: Optional[UploadFile] = File(default=None),
    description: Optional[str] = Form(default=None),
    visibility: str = Form(default="public"),
    requester_id: UUID = Depends(get_requester_id),
    post_service: PostService = Depends(get_post_service)
):
    """
    Create a post from an uploaded photo.

    The response is returned once the derivatives and record are stored;
    captioning and indexing continue in the background.
    """
    image_data = await file.read() if file is not None else None

    post = await post_service.create_post(
        owner_id=requester_id,
        image_data=image_data,
        description=description,
        visibility=visibility
    )
    return PostEnvelope(data=PostResponse.from_post(post))


@router.get("/{post_id}", response_model=PostEnvelope)
async def get_post(
    post_id: UUID,
    requester_id: Optional[UUID] = Depends(get_optional_requester_id),
    post_service: PostService = Depends(get_post_service)
):
    """Get a single post."""
    post = await post_service.get_post(post_id, requester_id)
    return PostEnvelope(data=PostResponse.from_post(post))


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: UUID,
    requester_id: UUID = Depends(get_requester_id),
    post_service: PostService = Depends(get_post_service)
):
    """Delete a post owned by the requester, with its blobs and index document."""
    await post_service.delete_post(post_id, requester_id)
    return MessageResponse(message="Post deleted")


@router.get("/{post_id}/similar", response_model=SimilarPostsResponse)
async def get_similar_posts(
    post_id: UUID,
    limit: Optional[int] = Query(default=None, description="Number of similar posts (1-50)"),
    similarity_service: SimilarityService = Depends(get_similarity_service)
):
    """
    Get posts similar to this one.

    **Returns:** ``data`` plus ``source``:
    - **embedding**: computed from caption embeddings just now
    - **cache**: served from a cached result younger than the freshness window
    - **fallback**: this post has no embedding yet; most recent posts instead

    An empty ``data`` with source ``embedding`` or ``cache`` means no post
    cleared the similarity threshold.
    """
    if limit is None:
        limit = settings.similar_default_limit
    if limit < 1 or limit > MAX_SIMILAR_LIMIT:
        raise ValidationException(f"limit must be between 1 and {MAX_SIMILAR_LIMIT}")

    try:
        result = await similarity_service.get_similar(post_id, limit)
    except EmbeddingUnavailable:
        logger.info(f"No embedding for {post_id}; returning recent posts")
        result = await similarity_service.recent_fallback(post_id, limit)

    return SimilarPostsResponse(
        data=[PostResponse.from_post(p) for p in result.posts],
        source=result.source
    )

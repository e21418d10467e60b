"""Post Pydantic schemas."""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .exif import ExifMetadata


class PostResponse(BaseModel):
    """Schema for post responses."""

    id: UUID
    owner_id: UUID
    image_url: str
    thumbnail_url: str
    description: Optional[str] = None
    exif_data: Optional[ExifMetadata] = None
    index_document_ref: Optional[str] = None
    visibility: str
    width: Optional[int] = None
    height: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @classmethod
    def from_post(cls, post) -> "PostResponse":
        return cls(
            id=post.id,
            owner_id=post.owner_id,
            image_url=post.image_url,
            thumbnail_url=post.thumbnail_url,
            description=post.description,
            exif_data=ExifMetadata.from_storage(post.exif_data) if post.exif_data else None,
            index_document_ref=post.index_document_ref,
            visibility=post.visibility,
            width=post.width,
            height=post.height,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PostEnvelope(BaseModel):
    """Single post wrapped in the ``data`` envelope used by the UI."""

    data: PostResponse


class PostListResponse(BaseModel):
    """Feed page."""

    data: List[PostResponse]
    limit: int
    offset: int
    error: Optional[str] = None


class SimilarPostsResponse(BaseModel):
    """
    Similar posts for a post detail view.

    ``source`` tells the caller how the list was produced:
    ``embedding`` (fresh similarity query), ``cache`` (fresh cache entry) or
    ``fallback`` (no embedding stored yet; most recent posts instead).
    """

    data: List[PostResponse] = Field(default_factory=list)
    source: str = Field(..., description="embedding, cache or fallback")
    error: Optional[str] = None

"""Pydantic schemas for API validation."""
from __future__ import annotations

from .common import OffsetPaginationParams, MessageResponse
from .exif import ExifMetadata
from .post import (
    PostResponse,
    PostEnvelope,
    PostListResponse,
    SimilarPostsResponse,
)
from .search import (
    ConversationMessage,
    SearchRequest,
    SearchResponse,
)

__all__ = [
    # Common
    "OffsetPaginationParams",
    "MessageResponse",
    # EXIF
    "ExifMetadata",
    # Post
    "PostResponse",
    "PostEnvelope",
    "PostListResponse",
    "SimilarPostsResponse",
    # Search
    "ConversationMessage",
    "SearchRequest",
    "SearchResponse",
]

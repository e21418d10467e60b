"""Data access layer - repositories."""
from .base import BaseRepository
from .post_repository import PostRepository
from .embedding_repository import EmbeddingRepository

__all__ = [
    "BaseRepository",
    "PostRepository",
    "EmbeddingRepository",
]

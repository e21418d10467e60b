"""SQLAlchemy ORM models."""
from .post import Post
from .embedding import PostEmbedding

__all__ = [
    "Post",
    "PostEmbedding",
]

"""Post embedding repository."""
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from shotshare.models.database import Post, PostEmbedding
from shotshare.repositories.base import BaseRepository


class EmbeddingRepository(BaseRepository[PostEmbedding]):
    """Repository for post embeddings."""

    def __init__(self, db: AsyncSession):
        super().__init__(PostEmbedding, db)

    async def get_by_post_id(self, post_id: UUID) -> Optional[PostEmbedding]:
        """
        Get the embedding row for a post.

        Args:
            post_id: Post UUID

        Returns:
            PostEmbedding or None
        """
        result = await self.db.execute(
            select(PostEmbedding).where(PostEmbedding.post_id == post_id)
        )
        return result.scalar_one_or_none()

    async def get_vector(self, post_id: UUID) -> Optional[List[float]]:
        row = await self.get_by_post_id(post_id)
        return list(row.embedding) if row else None

    async def upsert(
        self,
        post_id: UUID,
        embedding: List[float],
        model_name: str
    ) -> PostEmbedding:
        """
        Create or replace the embedding for a post.

        Args:
            post_id: Post UUID
            embedding: Vector values
            model_name: Model that produced the vector

        Returns:
            Created or updated row
        """
        existing = await self.get_by_post_id(post_id)

        if existing:
            existing.embedding = list(embedding)
            existing.model_name = model_name
            existing.dimension = len(embedding)
            await self.db.flush()
            await self.db.refresh(existing)
            return existing

        row = PostEmbedding(
            post_id=post_id,
            embedding=list(embedding),
            model_name=model_name,
            dimension=len(embedding)
        )
        return await self.create(row)

    async def delete_by_post_id(self, post_id: UUID) -> bool:
        """Delete the embedding for a post. Returns True if a row was removed."""
        result = await self.db.execute(
            delete(PostEmbedding).where(PostEmbedding.post_id == post_id)
        )
        await self.db.flush()
        return result.rowcount > 0

    async def all_public_vectors(self) -> List[Tuple[UUID, List[float]]]:
        """(post_id, vector) pairs for every public post that has an embedding."""
        result = await self.db.execute(
            select(PostEmbedding.post_id, PostEmbedding.embedding)
            .join(Post, Post.id == PostEmbedding.post_id)
            .where(Post.visibility == "public")
        )
        return [(row.post_id, list(row.embedding)) for row in result.all()]

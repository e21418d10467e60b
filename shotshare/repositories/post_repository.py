"""Post repository."""
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from shotshare.models.database import Post, PostEmbedding
from shotshare.repositories.base import BaseRepository


class PostRepository(BaseRepository[Post]):
    """Repository for post operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(Post, db)

    async def list_public(
        self,
        limit: int = 20,
        offset: int = 0,
        exclude_id: Optional[UUID] = None
    ) -> List[Post]:
        """
        Get public posts, newest first.

        Args:
            limit: Maximum number of posts
            offset: Number of posts to skip
            exclude_id: Post to leave out (e.g. the one being viewed)

        Returns:
            List of posts
        """
        query = select(Post).where(Post.visibility == "public")
        if exclude_id is not None:
            query = query.where(Post.id != exclude_id)
        query = query.order_by(Post.created_at.desc()).offset(offset).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_public(self) -> int:
        """Count public posts."""
        result = await self.db.execute(
            select(func.count())
            .select_from(Post)
            .where(Post.visibility == "public")
        )
        return result.scalar_one()

    async def get_public_by_ids(self, ids: Sequence[UUID]) -> List[Post]:
        """
        Resolve ids against live public posts, preserving the order of ``ids``.

        Ids that no longer exist or are not public are dropped.
        """
        if not ids:
            return []

        result = await self.db.execute(
            select(Post).where(Post.id.in_(list(ids)), Post.visibility == "public")
        )
        by_id: Dict[UUID, Post] = {post.id: post for post in result.scalars().all()}
        return [by_id[post_id] for post_id in ids if post_id in by_id]

    async def set_index_document_ref(self, post_id: UUID, document_ref: Optional[str]) -> Optional[Post]:
        """Record (or clear) the retrieval-index document reference."""
        return await self.update(post_id, {"index_document_ref": document_ref})

    async def ids_without_embedding(self, limit: int = 100) -> List[UUID]:
        """Posts with no stored embedding, oldest first."""
        result = await self.db.execute(
            select(Post.id)
            .outerjoin(PostEmbedding, PostEmbedding.post_id == Post.id)
            .where(PostEmbedding.id.is_(None))
            .order_by(Post.created_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def ids_not_indexed(self, limit: int = 100) -> List[UUID]:
        """Posts without an index document reference, oldest first."""
        result = await self.db.execute(
            select(Post.id)
            .where(Post.index_document_ref.is_(None))
            .order_by(Post.created_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

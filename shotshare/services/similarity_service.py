"""Embedding-based similar post lookup."""
import logging
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shotshare.core.config import settings
from shotshare.core.exceptions import EmbeddingUnavailable
from shotshare.models.database import Post
from shotshare.repositories import EmbeddingRepository, PostRepository
from shotshare.services.similarity_cache import SimilarityCache
from shotshare.services.vector_search_service import VectorSearchService

logger = logging.getLogger(__name__)

SOURCE_EMBEDDING = "embedding"
SOURCE_CACHE = "cache"
SOURCE_FALLBACK = "fallback"


@dataclass
class SimilarResult:
    posts: List[Post] = field(default_factory=list)
    source: str = SOURCE_EMBEDDING


class SimilarityService:
    """Finds posts whose caption embeddings are close to a given post's."""

    def __init__(
        self,
        db: AsyncSession,
        cache: SimilarityCache,
        vector_search: Optional[VectorSearchService] = None,
        threshold: Optional[float] = None
    ):
        """
        Initialize similarity service.

        Args:
            db: Database session
            cache: Similarity result cache
            vector_search: Nearest-neighbor backend (defaults to the store's)
            threshold: Cosine similarity floor (defaults to settings)
        """
        self.db = db
        self.cache = cache
        self.post_repo = PostRepository(db)
        self.embedding_repo = EmbeddingRepository(db)
        self.vector_search = vector_search or VectorSearchService(db)
        self.threshold = settings.similarity_threshold if threshold is None else threshold

    async def get_similar(self, post_id: UUID, limit: int) -> SimilarResult:
        """
        Get posts similar to ``post_id``, most similar first.

        A fresh cache entry computed for at least ``limit`` neighbors is
        re-resolved against live public posts. Otherwise the vector backend
        is queried for ``limit + 1`` neighbors, the post itself is dropped,
        and the ranked ids are cached along with ``limit``.

        Args:
            post_id: Post UUID
            limit: Maximum number of posts

        Returns:
            SimilarResult; an empty list means nothing cleared the threshold

        Raises:
            NotFoundException: If the post doesn't exist
            EmbeddingUnavailable: If the post has no stored embedding
        """
        await self.post_repo.get_by_id_or_fail(post_id)

        entry = await self.cache.get(post_id)
        if entry is not None and entry.covers(limit):
            ids = [i for i in entry.similar_post_ids if i != post_id]
            posts = await self.post_repo.get_public_by_ids(ids)
            logger.debug(f"Similar posts for {post_id} served from cache")
            return SimilarResult(posts=posts[:limit], source=SOURCE_CACHE)

        vector = await self.embedding_repo.get_vector(post_id)
        if vector is None:
            raise EmbeddingUnavailable(str(post_id))

        neighbors = await self.vector_search.nearest_neighbors(vector, self.threshold, limit + 1)
        ids = [n.post_id for n in neighbors if n.post_id != post_id][:limit]

        await self.cache.set(post_id, ids, limit=limit)

        posts = await self.post_repo.get_public_by_ids(ids)
        logger.info(f"Found {len(posts)} similar post(s) for {post_id}")
        return SimilarResult(posts=posts, source=SOURCE_EMBEDDING)

    async def recent_fallback(self, post_id: UUID, limit: int) -> SimilarResult:
        """Most recent public posts other than ``post_id``."""
        posts = await self.post_repo.list_public(limit=limit, exclude_id=post_id)
        return SimilarResult(posts=posts, source=SOURCE_FALLBACK)

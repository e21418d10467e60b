"""Nearest-neighbor search over stored post embeddings."""
import json
import logging
from dataclasses import dataclass
from typing import List, Sequence
from uuid import UUID

import numpy as np
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from shotshare.repositories import EmbeddingRepository

logger = logging.getLogger(__name__)

SIMILARITY_FUNCTION_SQL = """
CREATE OR REPLACE FUNCTION search_similar_posts(
    query_embedding vector,
    match_threshold float,
    match_count int
)
RETURNS TABLE (post_id uuid, similarity float)
LANGUAGE sql STABLE
AS $$
    SELECT e.post_id,
           1 - ((e.embedding::text)::vector <=> query_embedding) AS similarity
    FROM post_embeddings e
    JOIN posts p ON p.id = e.post_id
    WHERE p.visibility = 'public'
      AND 1 - ((e.embedding::text)::vector <=> query_embedding) > match_threshold
    ORDER BY (e.embedding::text)::vector <=> query_embedding
    LIMIT match_count;
$$;
"""

SIMILARITY_QUERY_SQL = text(
    "SELECT post_id, similarity "
    "FROM search_similar_posts(CAST(:embedding AS vector), :threshold, :count)"
)


@dataclass
class Neighbor:
    post_id: UUID
    similarity: float


class VectorSearchService:
    """
    Asks the relational store for the closest embeddings.

    On PostgreSQL this calls the ``search_similar_posts`` stored function
    (pgvector). Other dialects get an in-process numpy cosine scan with the
    same contract.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.embedding_repo = EmbeddingRepository(db)

    def _is_postgres(self) -> bool:
        bind = self.db.get_bind()
        return bind.dialect.name == "postgresql"

    async def nearest_neighbors(
        self,
        embedding: Sequence[float],
        threshold: float,
        count: int
    ) -> List[Neighbor]:
        """
        Get public posts whose cosine similarity to ``embedding`` exceeds ``threshold``.

        Args:
            embedding: Query vector
            threshold: Minimum cosine similarity (exclusive)
            count: Maximum number of results

        Returns:
            Neighbors ordered by descending similarity
        """
        if count <= 0:
            return []

        if self._is_postgres():
            return await self._search_pgvector(embedding, threshold, count)
        return await self._search_in_process(embedding, threshold, count)

    async def _search_pgvector(
        self,
        embedding: Sequence[float],
        threshold: float,
        count: int
    ) -> List[Neighbor]:
        result = await self.db.execute(
            SIMILARITY_QUERY_SQL,
            {"embedding": json.dumps(list(embedding)), "threshold": threshold, "count": count}
        )
        return [
            Neighbor(post_id=UUID(str(row.post_id)), similarity=float(row.similarity))
            for row in result
        ]

    async def _search_in_process(
        self,
        embedding: Sequence[float],
        threshold: float,
        count: int
    ) -> List[Neighbor]:
        rows = await self.embedding_repo.all_public_vectors()
        if not rows:
            return []

        query = np.asarray(embedding, dtype=np.float32)
        query_norm = np.linalg.norm(query) or 1e-9

        scored = []
        for post_id, vector in rows:
            vec = np.asarray(vector, dtype=np.float32)
            if vec.shape != query.shape:
                logger.warning(f"Skipping embedding for {post_id}: dimension {vec.shape[0]} != {query.shape[0]}")
                continue
            similarity = float(np.dot(vec, query) / ((np.linalg.norm(vec) * query_norm) or 1e-9))
            if similarity > threshold:
                scored.append(Neighbor(post_id=post_id, similarity=similarity))

        scored.sort(key=lambda n: n.similarity, reverse=True)
        return scored[:count]

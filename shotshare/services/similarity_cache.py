"""Similarity result cache on Redis."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional
from uuid import UUID

from shotshare.core.config import settings
from shotshare.core.redis import RedisClient, redis_client

logger = logging.getLogger(__name__)

KEY_PREFIX = "similar"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SimilarityCacheEntry:
    post_id: UUID
    similar_post_ids: List[UUID]
    created_at: datetime
    # Neighbor count the list was computed for; None means unbounded
    limit: Optional[int] = None

    def covers(self, limit: int) -> bool:
        return self.limit is None or limit <= self.limit

    def to_dict(self) -> dict:
        return {
            "post_id": str(self.post_id),
            "similar_post_ids": [str(i) for i in self.similar_post_ids],
            "created_at": self.created_at.isoformat(),
            "limit": self.limit,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SimilarityCacheEntry":
        created_at = datetime.fromisoformat(data["created_at"])
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(
            post_id=UUID(data["post_id"]),
            similar_post_ids=[UUID(i) for i in data.get("similar_post_ids", [])],
            created_at=created_at,
            limit=data.get("limit")
        )


class SimilarityCache:
    """
    One entry per post id, valid for a fixed freshness window.

    Freshness is checked when reading; entries are never evicted in the
    background. Writes replace any previous entry for the same post.
    """

    def __init__(
        self,
        redis: Optional[RedisClient] = None,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow
    ):
        self.redis = redis or redis_client
        self.ttl = timedelta(seconds=ttl_seconds or settings.similarity_cache_ttl_seconds)
        self.clock = clock

    @staticmethod
    def _key(post_id: UUID) -> str:
        return f"{KEY_PREFIX}:{post_id}"

    def is_fresh(self, entry: SimilarityCacheEntry) -> bool:
        return self.clock() - entry.created_at < self.ttl

    async def get(self, post_id: UUID) -> Optional[SimilarityCacheEntry]:
        """
        Get a fresh entry for a post.

        Returns:
            The entry, or None when missing, stale, unreadable or Redis is down
        """
        try:
            data = await self.redis.get_json(self._key(post_id))
        except Exception as e:
            logger.warning(f"Similarity cache read failed for {post_id}: {e}")
            return None

        if not data:
            return None

        try:
            entry = SimilarityCacheEntry.from_dict(data)
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Discarding malformed similarity cache entry for {post_id}: {e}")
            return None

        if not self.is_fresh(entry):
            logger.debug(f"Similarity cache entry for {post_id} is stale")
            return None

        return entry

    async def set(
        self,
        post_id: UUID,
        similar_post_ids: List[UUID],
        limit: Optional[int] = None
    ) -> Optional[SimilarityCacheEntry]:
        """
        Upsert the entry for a post. Returns None if the write failed.

        ``limit`` records how many neighbors were asked for, so a later
        request for more is treated as a miss.
        """
        entry = SimilarityCacheEntry(
            post_id=post_id,
            similar_post_ids=list(similar_post_ids),
            created_at=self.clock(),
            limit=limit
        )
        try:
            await self.redis.set_json(self._key(post_id), entry.to_dict())
        except Exception as e:
            logger.warning(f"Similarity cache write failed for {post_id}: {e}")
            return None
        return entry

    async def invalidate(self, post_id: UUID):
        try:
            await self.redis.delete(self._key(post_id))
        except Exception as e:
            logger.warning(f"Similarity cache delete failed for {post_id}: {e}")

    async def clear(self) -> int:
        """Drop every cached entry. Returns the number of keys removed."""
        try:
            return await self.redis.clear_pattern(f"{KEY_PREFIX}:*")
        except Exception as e:
            logger.error(f"Similarity cache clear failed: {e}")
            return 0

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except Exception:
            return False

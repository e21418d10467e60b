"""Redis connection used by the similar-posts cache."""
import json
import logging
from typing import Any, Optional

import redis.asyncio as redis

from .config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """
    Lazily connected Redis wrapper storing JSON documents.

    Connection errors propagate; callers that treat the cache as optional
    catch them at their own boundary.
    """

    def __init__(self, url: Optional[str] = None):
        self._url = url or settings.redis_url
        self._client: Optional[redis.Redis] = None

    async def _conn(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(self._url, encoding="utf-8", decode_responses=True)
        return self._client

    async def disconnect(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_json(self, key: str) -> Optional[Any]:
        """Decode the stored document; unreadable values count as absent."""
        raw = await (await self._conn()).get(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding undecodable cache value at {key}")
            return None

    async def set_json(self, key: str, value: Any, ex: Optional[int] = None):
        await (await self._conn()).set(key, json.dumps(value), ex=ex)

    async def delete(self, key: str):
        await (await self._conn()).delete(key)

    async def clear_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern and return how many went."""
        client = await self._conn()
        removed = 0
        async for batch in self._scan_batches(client, pattern):
            removed += await client.delete(*batch)
        return removed

    @staticmethod
    async def _scan_batches(client: redis.Redis, pattern: str, size: int = 100):
        cursor = 0
        while True:
            cursor, keys = await client.scan(cursor=cursor, match=pattern, count=size)
            if keys:
                yield keys
            if cursor == 0:
                return

    async def ping(self) -> bool:
        try:
            return bool(await (await self._conn()).ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False


redis_client = RedisClient()

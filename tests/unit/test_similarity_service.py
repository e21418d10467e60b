"""Unit tests for similar post lookup and its cache."""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from shotshare.core.exceptions import EmbeddingUnavailable, NotFoundException
from shotshare.repositories import EmbeddingRepository, PostRepository
from shotshare.services import SimilarityCache, SimilarityCacheEntry, SimilarityService
from shotshare.services.similarity_service import SOURCE_CACHE, SOURCE_EMBEDDING, SOURCE_FALLBACK
from tests.factories import PostEmbeddingFactory, PostFactory

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


async def add_post(db_session, vector=None, **kwargs):
    post = await PostRepository(db_session).create(PostFactory.create(**kwargs))
    if vector is not None:
        await EmbeddingRepository(db_session).create(PostEmbeddingFactory.create(post.id, vector))
    await db_session.commit()
    return post


@pytest.fixture
def cache(fake_redis):
    return SimilarityCache(fake_redis, ttl_seconds=24 * 3600, clock=lambda: NOW)


@pytest.mark.asyncio
class TestSimilarityCache:
    """Test freshness and upsert semantics."""

    async def test_round_trip(self, cache):
        post_id, other = uuid.uuid4(), uuid.uuid4()
        await cache.set(post_id, [other])

        entry = await cache.get(post_id)

        assert entry.similar_post_ids == [other]
        assert entry.created_at == NOW

    async def test_entry_remembers_requested_limit(self, cache):
        post_id = uuid.uuid4()
        await cache.set(post_id, [uuid.uuid4()], limit=4)

        entry = await cache.get(post_id)

        assert entry.limit == 4
        assert entry.covers(4) and entry.covers(1)
        assert not entry.covers(5)

    async def test_stale_entry_is_a_miss(self, fake_redis, cache):
        post_id = uuid.uuid4()
        stale = SimilarityCacheEntry(post_id, [uuid.uuid4()], NOW - timedelta(hours=24))
        await fake_redis.set_json(f"similar:{post_id}", stale.to_dict())

        assert await cache.get(post_id) is None

    async def test_entry_just_inside_window_is_fresh(self, fake_redis, cache):
        post_id = uuid.uuid4()
        entry = SimilarityCacheEntry(post_id, [], NOW - timedelta(hours=23, minutes=59))
        await fake_redis.set_json(f"similar:{post_id}", entry.to_dict())

        assert await cache.get(post_id) is not None

    async def test_set_replaces_previous_entry(self, fake_redis, cache):
        post_id = uuid.uuid4()
        await cache.set(post_id, [uuid.uuid4()])
        await cache.set(post_id, [])

        assert len(fake_redis.store) == 1
        assert (await cache.get(post_id)).similar_post_ids == []

    async def test_outage_degrades_to_miss(self, fake_redis, cache):
        fake_redis.available = False

        assert await cache.set(uuid.uuid4(), []) is None
        assert await cache.get(uuid.uuid4()) is None
        assert await cache.ping() is False

    async def test_malformed_entry_is_a_miss(self, fake_redis, cache):
        post_id = uuid.uuid4()
        await fake_redis.set_json(f"similar:{post_id}", {"post_id": "nope"})

        assert await cache.get(post_id) is None

    async def test_clear(self, fake_redis, cache):
        await cache.set(uuid.uuid4(), [])
        await cache.set(uuid.uuid4(), [])
        fake_redis.store["other:key"] = "1"

        assert await cache.clear() == 2
        assert list(fake_redis.store) == ["other:key"]


@pytest.mark.asyncio
class TestSimilarityService:
    """Test get_similar against the in-process vector scan."""

    async def test_excludes_self_and_dissimilar(self, db_session, cache):
        target = await add_post(db_session, [1.0, 0.0, 0.0])
        close = await add_post(db_session, [0.98, 0.2, 0.0])
        await add_post(db_session, [0.0, 1.0, 0.0])
        await add_post(db_session, [1.0, 0.0, 0.0], visibility="private")

        result = await SimilarityService(db_session, cache).get_similar(target.id, limit=10)

        assert result.source == SOURCE_EMBEDDING
        assert [p.id for p in result.posts] == [close.id]

    async def test_ranked_and_limited(self, db_session, cache):
        target = await add_post(db_session, [1.0, 0.0, 0.0])
        best = await add_post(db_session, [1.0, 0.05, 0.0])
        second = await add_post(db_session, [1.0, 0.3, 0.0])
        await add_post(db_session, [1.0, 0.4, 0.0])

        result = await SimilarityService(db_session, cache).get_similar(target.id, limit=2)

        assert [p.id for p in result.posts] == [best.id, second.id]

    async def test_threshold_is_exclusive(self, db_session, cache):
        target = await add_post(db_session, [1.0, 0.0])
        await add_post(db_session, [1.0, 0.0])  # cosine exactly 1.0

        service = SimilarityService(db_session, cache, threshold=1.0)
        result = await service.get_similar(target.id, limit=5)

        assert result.posts == []
        assert result.source == SOURCE_EMBEDDING

    async def test_result_is_cached(self, db_session, fake_redis, cache):
        target = await add_post(db_session, [1.0, 0.0, 0.0])
        close = await add_post(db_session, [0.99, 0.1, 0.0])

        await SimilarityService(db_session, cache).get_similar(target.id, limit=5)
        second = await SimilarityService(db_session, cache).get_similar(target.id, limit=5)

        assert second.source == SOURCE_CACHE
        assert [p.id for p in second.posts] == [close.id]
        assert f"similar:{target.id}" in fake_redis.store

    async def test_empty_result_is_cached_too(self, db_session, cache):
        target = await add_post(db_session, [1.0, 0.0])

        first = await SimilarityService(db_session, cache).get_similar(target.id, limit=5)
        second = await SimilarityService(db_session, cache).get_similar(target.id, limit=5)

        assert first.posts == [] and second.posts == []
        assert second.source == SOURCE_CACHE

    async def test_larger_limit_is_not_served_from_smaller_entry(self, db_session, cache):
        target = await add_post(db_session, [1.0, 0.0, 0.0])
        first = await add_post(db_session, [1.0, 0.05, 0.0])
        second = await add_post(db_session, [1.0, 0.1, 0.0])
        third = await add_post(db_session, [1.0, 0.15, 0.0])
        service = SimilarityService(db_session, cache)

        narrow = await service.get_similar(target.id, limit=1)
        wide = await service.get_similar(target.id, limit=3)

        assert [p.id for p in narrow.posts] == [first.id]
        assert wide.source == SOURCE_EMBEDDING
        assert [p.id for p in wide.posts] == [first.id, second.id, third.id]
        assert (await cache.get(target.id)).limit == 3

    async def test_smaller_limit_is_sliced_from_cache(self, db_session, cache):
        target = await add_post(db_session, [1.0, 0.0, 0.0])
        first = await add_post(db_session, [1.0, 0.05, 0.0])
        await add_post(db_session, [1.0, 0.1, 0.0])
        service = SimilarityService(db_session, cache)

        await service.get_similar(target.id, limit=5)
        result = await service.get_similar(target.id, limit=1)

        assert result.source == SOURCE_CACHE
        assert [p.id for p in result.posts] == [first.id]

    async def test_cached_ids_are_revalidated(self, db_session, cache):
        """Deleted or now-private posts in a fresh entry are dropped."""
        target = await add_post(db_session, [1.0, 0.0])
        live = await add_post(db_session)
        hidden = await add_post(db_session, visibility="private")
        await cache.set(target.id, [uuid.uuid4(), hidden.id, live.id], limit=5)

        result = await SimilarityService(db_session, cache).get_similar(target.id, limit=5)

        assert result.source == SOURCE_CACHE
        assert [p.id for p in result.posts] == [live.id]

    async def test_stale_cache_is_recomputed(self, db_session, fake_redis, cache):
        target = await add_post(db_session, [1.0, 0.0, 0.0])
        close = await add_post(db_session, [0.99, 0.1, 0.0])
        stale = SimilarityCacheEntry(target.id, [], NOW - timedelta(days=2))
        await fake_redis.set_json(f"similar:{target.id}", stale.to_dict())

        result = await SimilarityService(db_session, cache).get_similar(target.id, limit=5)

        assert result.source == SOURCE_EMBEDDING
        assert [p.id for p in result.posts] == [close.id]
        assert (await cache.get(target.id)).similar_post_ids == [close.id]

    async def test_missing_embedding(self, db_session, cache):
        target = await add_post(db_session)

        with pytest.raises(EmbeddingUnavailable):
            await SimilarityService(db_session, cache).get_similar(target.id, limit=5)

    async def test_unknown_post(self, db_session, cache):
        with pytest.raises(NotFoundException):
            await SimilarityService(db_session, cache).get_similar(uuid.uuid4(), limit=5)

    async def test_recent_fallback_excludes_self(self, db_session, cache):
        target = await add_post(db_session)
        other = await add_post(db_session)

        result = await SimilarityService(db_session, cache).recent_fallback(target.id, limit=5)

        assert result.source == SOURCE_FALLBACK
        assert [p.id for p in result.posts] == [other.id]

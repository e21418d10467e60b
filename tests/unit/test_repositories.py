"""Unit tests for repositories."""
from __future__ import annotations

import uuid

import pytest

from shotshare.core.exceptions import NotFoundException
from shotshare.repositories import EmbeddingRepository, PostRepository
from tests.factories import PostEmbeddingFactory, PostFactory


@pytest.mark.asyncio
class TestPostRepository:
    """Test PostRepository."""

    async def test_create_post(self, db_session):
        """Test creating a post."""
        repo = PostRepository(db_session)
        post = PostFactory.create()

        created = await repo.create(post)
        await db_session.commit()

        assert created.id == post.id
        assert created.index_document_ref is None
        assert created.exif_data == {"iso": 200, "f_value": 8.0}

    async def test_get_by_id_or_fail(self, db_session):
        repo = PostRepository(db_session)

        with pytest.raises(NotFoundException):
            await repo.get_by_id_or_fail(uuid.uuid4())

    async def test_list_public_newest_first(self, db_session):
        """Private posts are excluded and pages follow creation order."""
        repo = PostRepository(db_session)
        posts = PostFactory.create_batch(4)
        posts[1].visibility = "private"
        for post in posts:
            await repo.create(post)
        await db_session.commit()

        page = await repo.list_public(limit=2, offset=0)
        rest = await repo.list_public(limit=2, offset=2)

        assert [p.id for p in page] == [posts[3].id, posts[2].id]
        assert [p.id for p in rest] == [posts[0].id]
        assert await repo.count_public() == 3

    async def test_list_public_excluding(self, db_session):
        repo = PostRepository(db_session)
        posts = PostFactory.create_batch(2)
        for post in posts:
            await repo.create(post)
        await db_session.commit()

        result = await repo.list_public(exclude_id=posts[1].id)

        assert [p.id for p in result] == [posts[0].id]

    async def test_get_public_by_ids_keeps_order(self, db_session):
        repo = PostRepository(db_session)
        a, b, c = PostFactory.create_batch(3)
        c.visibility = "private"
        for post in (a, b, c):
            await repo.create(post)
        await db_session.commit()

        result = await repo.get_public_by_ids([b.id, uuid.uuid4(), c.id, a.id])

        assert [p.id for p in result] == [b.id, a.id]
        assert await repo.get_public_by_ids([]) == []

    async def test_set_index_document_ref(self, db_session):
        repo = PostRepository(db_session)
        post = await repo.create(PostFactory.create())
        await db_session.commit()

        updated = await repo.set_index_document_ref(post.id, "fileSearchStores/s/documents/1")
        missing = await repo.set_index_document_ref(uuid.uuid4(), "fileSearchStores/s/documents/2")

        assert updated.index_document_ref == "fileSearchStores/s/documents/1"
        assert missing is None

    async def test_maintenance_queries(self, db_session):
        repo = PostRepository(db_session)
        older, newer = PostFactory.create_batch(2)
        newer.index_document_ref = "fileSearchStores/s/documents/1"
        for post in (older, newer):
            await repo.create(post)
        await EmbeddingRepository(db_session).create(PostEmbeddingFactory.create(newer.id, [0.1, 0.2]))
        await db_session.commit()

        assert await repo.ids_without_embedding() == [older.id]
        assert await repo.ids_not_indexed() == [older.id]


@pytest.mark.asyncio
class TestEmbeddingRepository:
    """Test EmbeddingRepository."""

    async def test_upsert_replaces(self, db_session):
        post = await PostRepository(db_session).create(PostFactory.create())
        repo = EmbeddingRepository(db_session)

        await repo.upsert(post.id, [0.1, 0.2, 0.3], "model-a")
        await repo.upsert(post.id, [0.4, 0.5], "model-b")
        await db_session.commit()

        row = await repo.get_by_post_id(post.id)
        assert row.embedding == [0.4, 0.5]
        assert row.dimension == 2
        assert row.model_name == "model-b"
        assert await repo.count() == 1

    async def test_all_public_vectors(self, db_session):
        posts = PostRepository(db_session)
        public = await posts.create(PostFactory.create())
        private = await posts.create(PostFactory.create(visibility="private"))
        repo = EmbeddingRepository(db_session)
        await repo.upsert(public.id, [1.0, 0.0], "m")
        await repo.upsert(private.id, [0.0, 1.0], "m")
        await db_session.commit()

        assert await repo.all_public_vectors() == [(public.id, [1.0, 0.0])]

    async def test_delete_by_post_id(self, db_session):
        post = await PostRepository(db_session).create(PostFactory.create())
        repo = EmbeddingRepository(db_session)
        await repo.upsert(post.id, [1.0], "m")

        assert await repo.delete_by_post_id(post.id) is True
        assert await repo.get_vector(post.id) is None

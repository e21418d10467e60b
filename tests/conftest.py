"""Pytest configuration and fixtures."""
from __future__ import annotations

import os
import sys
import tempfile
import uuid
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from httpx import ASGITransport, AsyncClient

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Settings are read at import time; point them at throwaway local resources.
_TEST_DIR = Path(tempfile.mkdtemp(prefix="shotshare-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR / 'test.db'}"
os.environ["STORAGE_ROOT"] = str(_TEST_DIR / "media")
os.environ["CAPTION_GENERATOR"] = "dummy"
os.environ["EMBEDDING_PROVIDER"] = "dummy"
os.environ["EMBEDDING_DIMENSION"] = "8"
os.environ["GEMINI_API_KEY"] = ""
os.environ["FILE_SEARCH_STORE_NAME"] = ""

from shotshare.core.database import Base, get_db
from shotshare.core.config import settings
from shotshare.main import app
from shotshare.api.dependencies import (
    get_grounded_model,
    get_indexing_dispatcher,
    get_indexing_pipeline,
    get_similarity_cache,
    get_storage_service,
)
from shotshare.caption_generators import DummyCaptionGenerator
from shotshare.embedding_generators import DummyEmbeddingGenerator
from shotshare.services import (
    DocumentIndexer,
    IndexingDispatcher,
    IndexingPipeline,
    PostService,
    SimilarityCache,
    StorageService,
)
import shotshare.models.database  # noqa: F401  (registers tables)
from tests.fakes import FakeGroundedModel, FakeIndexClient, FakeRedis


# Test database URL
TEST_DATABASE_URL = settings.database_url


@pytest_asyncio.fixture(scope="function")
async def test_db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=NullPool,  # No connection pooling for tests
        echo=False
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Cleanup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_db_engine) -> async_sessionmaker:
    """Session factory used by the detached indexing phase."""
    return async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def similarity_cache(fake_redis) -> SimilarityCache:
    return SimilarityCache(fake_redis)


@pytest.fixture
def storage(tmp_path) -> StorageService:
    return StorageService(root=tmp_path / "blobs", public_base_url="http://test/media")


@pytest.fixture
def index_client() -> FakeIndexClient:
    return FakeIndexClient()


@pytest.fixture
def indexer(index_client) -> DocumentIndexer:
    return DocumentIndexer(index_client, poll_interval=0, max_attempts=5)


@pytest.fixture
def embedding_generator() -> DummyEmbeddingGenerator:
    return DummyEmbeddingGenerator(dimension=8)


@pytest.fixture
def pipeline(session_factory, indexer, embedding_generator) -> IndexingPipeline:
    return IndexingPipeline(
        session_factory=session_factory,
        caption_generator=DummyCaptionGenerator(),
        embedding_generator=embedding_generator,
        indexer=indexer
    )


@pytest.fixture
def dispatcher() -> IndexingDispatcher:
    return IndexingDispatcher()


@pytest.fixture
def post_service(db_session, storage, similarity_cache, pipeline, dispatcher) -> PostService:
    return PostService(db_session, storage, similarity_cache, pipeline, dispatcher)


@pytest.fixture
def grounded_model() -> FakeGroundedModel:
    return FakeGroundedModel()


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    storage: StorageService,
    similarity_cache: SimilarityCache,
    pipeline: IndexingPipeline,
    dispatcher: IndexingDispatcher,
    grounded_model: FakeGroundedModel
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with database and external services overridden."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service] = lambda: storage
    app.dependency_overrides[get_similarity_cache] = lambda: similarity_cache
    app.dependency_overrides[get_indexing_pipeline] = lambda: pipeline
    app.dependency_overrides[get_indexing_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_grounded_model] = lambda: grounded_model

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    await dispatcher.drain(timeout=10)
    await dispatcher.cancel_all()
    app.dependency_overrides.clear()


@pytest.fixture
def owner_id():
    return uuid.uuid4()

"""Detached post-creation phase: caption, index document, embedding."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Coroutine, List, Optional, Set
from uuid import UUID

from sqlalchemy.ext.asyncio import async_sessionmaker

from shotshare.caption_generators import BaseCaptionGenerator
from shotshare.core.exceptions import EmbeddingGenerationFailed
from shotshare.embedding_generators import BaseEmbeddingGenerator
from shotshare.repositories import EmbeddingRepository, PostRepository
from shotshare.services.document_indexer import DocumentIndexer, IndexDocument, IndexingResult

logger = logging.getLogger(__name__)


@dataclass
class IndexingOutcome:
    post_id: UUID
    caption: str
    indexing: IndexingResult
    embedded: bool = False


class IndexingPipeline:
    """
    Makes a freshly persisted post searchable.

    Every step is best-effort. Failures are logged and reflected in the
    returned outcome; the post itself is never affected except for its
    ``index_document_ref``.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        caption_generator: BaseCaptionGenerator,
        embedding_generator: BaseEmbeddingGenerator,
        indexer: DocumentIndexer
    ):
        self.session_factory = session_factory
        self.caption_generator = caption_generator
        self.embedding_generator = embedding_generator
        self.indexer = indexer

    async def run(self, document: IndexDocument, image_data: bytes) -> IndexingOutcome:
        post_id = document.post_id

        caption = await self.caption_generator.generate_caption(image_data)
        if not caption:
            logger.warning(
                f"No caption from {self.caption_generator.generator_name} for post {post_id}; "
                f"indexing description and EXIF only"
            )
        document.caption = caption

        result = await self.indexer.index(document)
        if result.succeeded:
            await self._record_document_ref(post_id, result.document_ref)

        embedded = False
        if caption:
            embedded = await self._store_embedding(post_id, caption)

        return IndexingOutcome(post_id=post_id, caption=caption, indexing=result, embedded=embedded)

    async def _record_document_ref(self, post_id: UUID, document_ref: str):
        try:
            async with self.session_factory() as session:
                post = await PostRepository(session).set_index_document_ref(post_id, document_ref)
                await session.commit()
        except Exception as e:
            logger.error(f"Could not record index document for post {post_id}: {e}")
            return

        if post is None:
            # Post was deleted while indexing ran.
            logger.info(f"Post {post_id} no longer exists; removing its index document")
            await self.indexer.delete(document_ref)

    async def embed_caption(self, caption: str) -> List[float]:
        """
        Embed a caption and check it against the configured dimension.

        Raises:
            EmbeddingGenerationFailed: If the call fails or the vector has the wrong length
        """
        generator = self.embedding_generator
        vector = await generator.generate_text_embedding(caption)
        if len(vector) != generator.dimension:
            raise EmbeddingGenerationFailed(
                f"expected {generator.dimension} dimensions, got {len(vector)}"
            )
        return vector

    async def _store_embedding(self, post_id: UUID, caption: str) -> bool:
        try:
            vector = await self.embed_caption(caption)
        except EmbeddingGenerationFailed as e:
            logger.warning(f"Embedding skipped for post {post_id}: {e.message}")
            return False
        except Exception as e:
            logger.error(f"Embedding failed for post {post_id}: {e}")
            return False

        try:
            async with self.session_factory() as session:
                if not await PostRepository(session).exists(post_id):
                    return False
                await EmbeddingRepository(session).upsert(
                    post_id,
                    vector,
                    self.embedding_generator.model_name
                )
                await session.commit()
        except Exception as e:
            logger.error(f"Could not store embedding for post {post_id}: {e}")
            return False

        return True


class IndexingDispatcher:
    """Runs indexing jobs as background tasks without awaiting them."""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            logger.info(f"Indexing task {task.get_name()} cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Indexing task {task.get_name()} crashed: {exc}")

    async def drain(self, timeout: Optional[float] = None):
        """Wait for in-flight jobs; whatever is left after ``timeout`` keeps running."""
        if not self._tasks:
            return
        await asyncio.wait(set(self._tasks), timeout=timeout)

    async def cancel_all(self):
        tasks = set(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

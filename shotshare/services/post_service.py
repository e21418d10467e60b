"""Post service: ingestion, deletion and reads."""
import asyncio
import logging
import uuid
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shotshare.core.config import settings
from shotshare.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    PersistenceFailed,
    StorageUploadFailed,
    ValidationException,
)
from shotshare.imaging import (
    DerivativeGenerator,
    ImageFormat,
    convert_heic_to_jpeg,
    detect_image_format,
    extract_exif,
)
from shotshare.models.database import Post
from shotshare.models.schemas import ExifMetadata
from shotshare.repositories import EmbeddingRepository, PostRepository
from shotshare.services.indexing_pipeline import IndexingDispatcher, IndexingOutcome, IndexingPipeline
from shotshare.services.similarity_cache import SimilarityCache
from shotshare.services.storage_service import StorageService

logger = logging.getLogger(__name__)

VISIBILITIES = ("public", "private")

FILE_EXTENSIONS = {
    ImageFormat.JPEG: "jpg",
    ImageFormat.PNG: "png",
    ImageFormat.WEBP: "webp",
    ImageFormat.GIF: "gif",
}


class PostService:
    """
    Drives uploads end to end.

    ``create_post`` has two phases. The transactional phase (derivatives,
    blob uploads, record write) either fully succeeds or leaves nothing
    behind. The detached phase (caption, index document, embedding) is
    dispatched afterwards and never affects the caller's result.
    """

    def __init__(
        self,
        db: AsyncSession,
        storage: StorageService,
        cache: SimilarityCache,
        pipeline: IndexingPipeline,
        dispatcher: IndexingDispatcher,
        derivatives: Optional[DerivativeGenerator] = None
    ):
        """
        Initialize post service.

        Args:
            db: Database session
            storage: Blob storage
            cache: Similarity cache, invalidated on delete
            pipeline: Detached indexing phase
            dispatcher: Background task runner for the pipeline
            derivatives: Derivative generator (defaults to settings)
        """
        self.db = db
        self.storage = storage
        self.cache = cache
        self.pipeline = pipeline
        self.dispatcher = dispatcher
        self.derivatives = derivatives or DerivativeGenerator()
        self.repo = PostRepository(db)
        self.embedding_repo = EmbeddingRepository(db)

    async def get_post(self, post_id: UUID, requester_id: Optional[UUID] = None) -> Post:
        """
        Get a post visible to the requester.

        Raises:
            NotFoundException: If missing, or private and not owned by the requester
        """
        post = await self.repo.get_by_id_or_fail(post_id)
        if not post.is_public and post.owner_id != requester_id:
            raise NotFoundException("posts", str(post_id))
        return post

    async def list_posts(self, limit: int, offset: int) -> List[Post]:
        return await self.repo.list_public(limit=limit, offset=offset)

    def _validate(self, image_data: Optional[bytes], description: Optional[str], visibility: str):
        if not image_data:
            raise ValidationException("An image file is required")
        if len(image_data) > settings.max_upload_size_bytes:
            raise ValidationException(
                f"Image exceeds the {settings.max_upload_size_mb}MB upload limit"
            )
        if description and len(description) > settings.max_description_length:
            raise ValidationException(
                f"Description exceeds {settings.max_description_length} characters"
            )
        if visibility not in VISIBILITIES:
            raise ValidationException(f"Visibility must be one of: {', '.join(VISIBILITIES)}")

    async def create_post(
        self,
        owner_id: UUID,
        image_data: Optional[bytes],
        description: Optional[str] = None,
        visibility: str = "public"
    ) -> Post:
        """
        Create a post from an uploaded image.

        Args:
            owner_id: Uploading user's UUID
            image_data: Raw upload bytes
            description: Optional user text
            visibility: 'public' or 'private'

        Returns:
            The persisted post. ``index_document_ref`` is None at this point;
            indexing completes in the background.

        Raises:
            ValidationException: If no image or invalid fields are supplied
            DerivativeGenerationFailed: If the image cannot be processed
            StorageUploadFailed: If a blob upload fails (uploaded blobs are removed)
            PersistenceFailed: If the record write fails (uploaded blobs are removed)
        """
        self._validate(image_data, description, visibility)
        description = description.strip() if description else None

        image_format = detect_image_format(image_data)
        logger.info(f"Creating post for {owner_id}: {image_format.value}, {len(image_data)} bytes")

        exif = await asyncio.to_thread(extract_exif, image_data)

        source = image_data
        if image_format is ImageFormat.HEIC:
            source = await asyncio.to_thread(convert_heic_to_jpeg, image_data)

        derived = await self.derivatives.generate(source)

        post_id = uuid.uuid4()
        extension = FILE_EXTENSIONS.get(derived.display_format, "jpg")
        image_path = self.storage.build_path(owner_id, post_id, f"image.{extension}")
        thumbnail_path = self.storage.build_path(owner_id, post_id, "thumbnail.jpg")

        await self._upload_derivatives(
            [
                (derived.display, image_path, derived.display_format.content_type),
                (derived.thumbnail, thumbnail_path, ImageFormat.JPEG.content_type),
            ]
        )

        image_url = self.storage.public_url(image_path)
        post = Post(
            id=post_id,
            owner_id=owner_id,
            image_path=image_path,
            thumbnail_path=thumbnail_path,
            image_url=image_url,
            thumbnail_url=self.storage.public_url(thumbnail_path),
            description=description,
            exif_data=None if exif.is_empty() else exif.to_storage(),
            visibility=visibility,
            width=derived.width,
            height=derived.height,
        )

        try:
            post = await self.repo.create(post)
            # The detached phase reads and updates this row from its own session.
            await self.db.commit()
        except Exception as e:
            logger.error(f"Persisting post {post_id} failed: {e}")
            await self.db.rollback()
            await self._delete_blobs([image_path, thumbnail_path])
            raise PersistenceFailed(str(e))

        document = self.pipeline.indexer.build_document(
            post_id=post.id,
            caption="",
            description=post.description,
            exif=exif,
            image_url=image_url,
            created_at=post.created_at
        )
        self.dispatcher.dispatch(
            self.pipeline.run(document, derived.display),
            name=f"index-{post.id}"
        )

        logger.info(f"Post {post.id} created")
        return post

    async def _upload_derivatives(self, uploads):
        """Upload blobs concurrently; on any failure remove the ones that landed."""
        results = await asyncio.gather(
            *(self.storage.upload(data, path, content_type) for data, path, content_type in uploads),
            return_exceptions=True
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        if not failures:
            return

        uploaded = [
            path for (_, path, _), result in zip(uploads, results)
            if not isinstance(result, BaseException)
        ]
        for failure in failures:
            logger.error(f"Derivative upload failed: {failure}")
        await self._delete_blobs(uploaded)

        raise StorageUploadFailed(str(failures[0]))

    async def _delete_blobs(self, paths: List[str]):
        """Delete blobs independently; failures are logged."""
        results = await asyncio.gather(
            *(self.storage.delete(path) for path in paths),
            return_exceptions=True
        )
        for path, result in zip(paths, results):
            if isinstance(result, BaseException):
                logger.warning(f"Could not delete blob {path}: {result}")

    async def delete_post(self, post_id: UUID, requester_id: UUID):
        """
        Delete a post owned by the requester.

        Blob and index cleanup are attempted independently and never block
        removal of the record.

        Raises:
            NotFoundException: If the post doesn't exist
            ForbiddenException: If the requester is not the owner
        """
        post = await self.repo.get_by_id_or_fail(post_id)
        if post.owner_id != requester_id:
            raise ForbiddenException("Only the owner can delete this post")

        await asyncio.gather(
            self._delete_blobs([post.image_path, post.thumbnail_path]),
            self.pipeline.indexer.delete(post.index_document_ref),
        )

        await self.embedding_repo.delete_by_post_id(post_id)
        await self.repo.delete(post_id)
        await self.db.commit()

        await self.cache.invalidate(post_id)
        logger.info(f"Post {post_id} deleted by {requester_id}")

    async def reindex_post(self, post_id: UUID) -> IndexingOutcome:
        """
        Run the detached phase inline for an existing post.

        Any previous index document is removed first so a post never has two.

        Raises:
            NotFoundException: If the post doesn't exist
            StorageException: If the display image can't be read
        """
        post = await self.repo.get_by_id_or_fail(post_id)
        image_data = await self.storage.read(post.image_path)

        if post.index_document_ref:
            await self.pipeline.indexer.delete(post.index_document_ref)
            await self.repo.set_index_document_ref(post_id, None)
            await self.db.commit()

        document = self.pipeline.indexer.build_document(
            post_id=post.id,
            caption="",
            description=post.description,
            exif=ExifMetadata.from_storage(post.exif_data),
            image_url=post.image_url,
            created_at=post.created_at
        )
        return await self.pipeline.run(document, image_data)

    async def backfill_embedding(self, post_id: UUID) -> bool:
        """
        Regenerate a post's embedding from its stored display image.

        Returns:
            True if an embedding was stored, False if no caption could be produced

        Raises:
            NotFoundException: If the post doesn't exist
            StorageException: If the display image can't be read
            EmbeddingGenerationFailed: If the embedding call fails or has the wrong dimension
        """
        post = await self.repo.get_by_id_or_fail(post_id)
        image_data = await self.storage.read(post.image_path)

        caption = await self.pipeline.caption_generator.generate_caption(image_data)
        if not caption:
            logger.warning(f"Backfill for {post_id} skipped: empty caption")
            return False

        vector = await self.pipeline.embed_caption(caption)

        await self.embedding_repo.upsert(post_id, vector, self.pipeline.embedding_generator.model_name)
        await self.db.commit()
        await self.cache.invalidate(post_id)
        return True

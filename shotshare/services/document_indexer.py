"""Document indexing into the external retrieval index.

Indexing runs as a small state machine::

    BUILDING -> UPLOADING -> POLLING -> ACTIVE | FAILED | TIMED_OUT

FAILED and TIMED_OUT are recoverable: the post simply stays without an index
document reference until it is re-indexed.
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple
from uuid import UUID

from shotshare.clients.base import IndexOperation, RetrievalIndexClient
from shotshare.core.config import settings
from shotshare.core.exceptions import IndexingFailed, IndexingTimedOut
from shotshare.models.schemas import ExifMetadata

logger = logging.getLogger(__name__)


class IndexingState(str, Enum):
    BUILDING = "building"
    UPLOADING = "uploading"
    POLLING = "polling"
    ACTIVE = "active"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class IndexDocument:
    """Searchable representation of one photo."""

    post_id: UUID
    caption: str
    description: str
    exif: ExifMetadata
    image_url: str
    created_at: datetime

    @property
    def display_name(self) -> str:
        return f"photo_{self.post_id}.json"

    def to_json(self) -> bytes:
        body = {
            "post_id": str(self.post_id),
            "caption": self.caption,
            "description": self.description,
            "exif": self.exif.to_storage(),
            "image_url": self.image_url,
            "created_at": self.created_at.isoformat(),
        }
        return json.dumps(body, ensure_ascii=False).encode("utf-8")

    def custom_metadata(self) -> Dict[str, str]:
        """Filterable attributes; every value is a string and absent EXIF fields are omitted."""
        metadata = {
            "post_id": str(self.post_id),
            "description": self.description or "",
        }
        for key, value in self.exif.to_storage().items():
            metadata[key] = str(value)
        return metadata


@dataclass
class IndexingResult:
    """Outcome of one indexing attempt."""

    state: IndexingState
    document_ref: Optional[str] = None
    attempts: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == IndexingState.ACTIVE


class DocumentIndexer:
    """Uploads index documents and waits for the indexing job to finish."""

    def __init__(
        self,
        client: RetrievalIndexClient,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None
    ):
        self.client = client
        self.poll_interval = settings.index_poll_interval_seconds if poll_interval is None else poll_interval
        self.max_attempts = settings.index_max_poll_attempts if max_attempts is None else max_attempts

    def build_document(
        self,
        post_id: UUID,
        caption: str,
        description: Optional[str],
        exif: Optional[ExifMetadata],
        image_url: str,
        created_at: datetime
    ) -> IndexDocument:
        return IndexDocument(
            post_id=post_id,
            caption=caption or "",
            description=description or "",
            exif=exif or ExifMetadata(),
            image_url=image_url,
            created_at=created_at
        )

    async def index(self, document: IndexDocument) -> IndexingResult:
        """
        Upload a document and poll until it is active.

        Never raises for upload, poll or timeout failures; those are reported
        in the returned result. Cancellation propagates.

        Args:
            document: Document to index

        Returns:
            IndexingResult with the document reference when ACTIVE
        """
        state = IndexingState.BUILDING
        attempts = 0

        try:
            payload = document.to_json()
            metadata = document.custom_metadata()

            state = IndexingState.UPLOADING
            try:
                operation = await self.client.submit(payload, document.display_name, metadata)
            except IndexingFailed:
                raise
            except Exception as e:
                raise IndexingFailed(f"upload rejected: {e}")

            state = IndexingState.POLLING
            operation, attempts = await self._wait_for_completion(operation)

            logger.info(
                f"Indexed post {document.post_id} as {operation.document_ref} "
                f"after {attempts} poll(s)"
            )
            return IndexingResult(
                state=IndexingState.ACTIVE,
                document_ref=operation.document_ref,
                attempts=attempts
            )

        except IndexingTimedOut as e:
            logger.warning(f"Indexing timed out for post {document.post_id}: {e.message}")
            return IndexingResult(
                state=IndexingState.TIMED_OUT,
                attempts=e.attempts,
                error=e.message
            )
        except IndexingFailed as e:
            logger.error(f"Indexing failed for post {document.post_id} while {state.value}: {e.message}")
            return IndexingResult(state=IndexingState.FAILED, attempts=attempts, error=e.message)
        except Exception as e:
            logger.error(f"Indexing failed for post {document.post_id} while {state.value}: {e}")
            return IndexingResult(state=IndexingState.FAILED, attempts=attempts, error=str(e))

    async def _wait_for_completion(self, operation: IndexOperation) -> Tuple[IndexOperation, int]:
        """
        Poll at a fixed interval until done or the attempt ceiling is hit.

        Returns:
            (completed operation, number of polls made)

        Raises:
            IndexingFailed: If the job reports an error or a poll fails
            IndexingTimedOut: If the job is not done after ``max_attempts`` polls
        """
        attempts = 0

        while not operation.done:
            if attempts >= self.max_attempts:
                raise IndexingTimedOut(attempts)

            await asyncio.sleep(self.poll_interval)
            try:
                operation = await self.client.poll(operation)
            except Exception as e:
                raise IndexingFailed(f"poll {attempts + 1} failed: {e}")
            attempts += 1

            if attempts % 5 == 0 and not operation.done:
                logger.debug(f"Still waiting on {operation.name} ({attempts} polls)")

        if operation.error:
            raise IndexingFailed(operation.error)
        if not operation.document_ref:
            raise IndexingFailed("operation completed without a document reference")

        return operation, attempts

    async def delete(self, document_ref: Optional[str]) -> bool:
        """
        Best-effort removal of an indexed document.

        Returns:
            True if the index accepted the deletion, False otherwise (logged)
        """
        if not document_ref:
            return False

        try:
            await self.client.delete(document_ref)
            logger.info(f"Deleted index document {document_ref}")
            return True
        except Exception as e:
            logger.warning(f"Failed to delete index document {document_ref}: {e}")
            return False

"""google-genai adapters for the File Search store and grounded generation."""
import io
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from google import genai
from google.genai import types

from shotshare.core.config import settings
from shotshare.core.exceptions import IndexingFailed, StreamError
from .base import GroundedChunk, GroundedModelClient, IndexOperation, RetrievalIndexClient

logger = logging.getLogger(__name__)

_client: Optional[genai.Client] = None


def get_genai_client() -> genai.Client:
    """Shared client for the configured API key."""
    global _client
    if _client is None:
        if not settings.gemini_api_key:
            raise RuntimeError("GEMINI_API_KEY is not set")
        _client = genai.Client(api_key=settings.gemini_api_key)
    return _client


def _operation_error(operation: Any) -> Optional[str]:
    error = getattr(operation, "error", None)
    if not error:
        return None
    if isinstance(error, dict):
        return error.get("message") or str(error)
    return str(error)


def _document_ref(operation: Any) -> Optional[str]:
    response = getattr(operation, "response", None)
    ref = getattr(response, "document_name", None) if response is not None else None
    return ref or getattr(operation, "name", None)


class FileSearchIndexClient(RetrievalIndexClient):
    """Retrieval index backed by a Gemini File Search store."""

    def __init__(self, store_name: Optional[str] = None, client: Optional[genai.Client] = None):
        self.store_name = store_name or settings.file_search_store_name
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = get_genai_client()
        return self._client

    def _to_handle(self, operation: Any) -> IndexOperation:
        done = bool(getattr(operation, "done", False))
        return IndexOperation(
            name=getattr(operation, "name", None) or "",
            done=done,
            document_ref=_document_ref(operation) if done else None,
            error=_operation_error(operation),
            raw=operation
        )

    async def submit(
        self,
        payload: bytes,
        display_name: str,
        metadata: Dict[str, str]
    ) -> IndexOperation:
        if not self.store_name:
            raise IndexingFailed("FILE_SEARCH_STORE_NAME is not configured")

        operation = await self.client.aio.file_search_stores.upload_to_file_search_store(
            file_search_store_name=self.store_name,
            file=io.BytesIO(payload),
            config=types.UploadToFileSearchStoreConfig(
                display_name=display_name,
                mime_type="application/json",
                custom_metadata=[
                    types.CustomMetadata(key=key, string_value=value)
                    for key, value in metadata.items()
                ]
            )
        )
        return self._to_handle(operation)

    async def poll(self, operation: IndexOperation) -> IndexOperation:
        refreshed = await self.client.aio.operations.get(operation.raw)
        return self._to_handle(refreshed)

    async def delete(self, document_ref: str) -> None:
        await self.client.aio.file_search_stores.documents.delete(
            name=document_ref,
            config=types.DeleteDocumentConfig(force=True)
        )


class GeminiGroundedModel(GroundedModelClient):
    """Streams answers from a Gemini model with the File Search tool enabled."""

    def __init__(
        self,
        store_name: Optional[str] = None,
        model_name: Optional[str] = None,
        client: Optional[genai.Client] = None
    ):
        self.store_name = store_name or settings.file_search_store_name
        self.model_name = model_name or settings.generation_model
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = get_genai_client()
        return self._client

    async def stream(self, contents: List[Dict[str, Any]]) -> AsyncIterator[GroundedChunk]:
        if not self.store_name:
            raise StreamError("FILE_SEARCH_STORE_NAME is not configured")

        config = types.GenerateContentConfig(
            tools=[
                types.Tool(
                    file_search=types.FileSearch(file_search_store_names=[self.store_name])
                )
            ]
        )

        response_stream = await self.client.aio.models.generate_content_stream(
            model=self.model_name,
            contents=contents,
            config=config
        )
        async for chunk in response_stream:
            yield GroundedChunk(
                text=chunk.text or "",
                grounding_texts=self._grounding_texts(chunk)
            )

    @staticmethod
    def _grounding_texts(chunk: Any) -> List[str]:
        candidates = getattr(chunk, "candidates", None) or []
        if not candidates:
            return []

        metadata = getattr(candidates[0], "grounding_metadata", None)
        grounding_chunks = getattr(metadata, "grounding_chunks", None) or []

        texts = []
        for grounding_chunk in grounding_chunks:
            context = getattr(grounding_chunk, "retrieved_context", None)
            text = getattr(context, "text", None)
            if text:
                texts.append(text)
        return texts

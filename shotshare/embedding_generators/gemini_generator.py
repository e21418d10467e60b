"""Gemini text embedding generator."""
import logging
from typing import List, Optional

from google import genai
from google.genai import types

from shotshare.core.config import settings
from shotshare.core.exceptions import EmbeddingGenerationFailed
from .base import BaseEmbeddingGenerator

logger = logging.getLogger(__name__)

SIMILARITY_TASK_TYPE = "SEMANTIC_SIMILARITY"


class GeminiEmbeddingGenerator(BaseEmbeddingGenerator):
    """Embeds text with a Gemini embedding model tuned for similarity."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        dimension: Optional[int] = None,
        client: Optional[genai.Client] = None
    ):
        self.api_key = api_key or settings.gemini_api_key
        self._model_name = model_name or settings.embedding_model
        self._dimension = dimension or settings.embedding_dimension
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                raise EmbeddingGenerationFailed("GEMINI_API_KEY is not set")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dimension(self) -> int:
        return self._dimension

    async def generate_text_embedding(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise EmbeddingGenerationFailed("Cannot embed empty text")

        try:
            response = await self.client.aio.models.embed_content(
                model=self.model_name,
                contents=text,
                config=types.EmbedContentConfig(
                    task_type=SIMILARITY_TASK_TYPE,
                    output_dimensionality=self.dimension
                )
            )
        except Exception as e:
            logger.error(f"Embedding request failed: {e}")
            raise EmbeddingGenerationFailed(str(e))

        if not response.embeddings or not response.embeddings[0].values:
            raise EmbeddingGenerationFailed("Embedding response was empty")

        return list(response.embeddings[0].values)

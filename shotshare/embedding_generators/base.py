"""Base embedding generator interface."""
from abc import ABC, abstractmethod
from typing import List


class BaseEmbeddingGenerator(ABC):
    """Abstract base class for text embedding generators."""

    @abstractmethod
    async def generate_text_embedding(self, text: str) -> List[float]:
        """
        Convert text into a fixed-length vector.

        Args:
            text: Text to embed (usually a caption)

        Returns:
            Vector of ``dimension`` floats

        Raises:
            EmbeddingGenerationFailed: If the model call fails or returns nothing
        """
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        pass

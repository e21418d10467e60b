"""Pluggable text embedding generation."""
from shotshare.core.config import settings

from .base import BaseEmbeddingGenerator
from .dummy_generator import DummyEmbeddingGenerator
from .gemini_generator import GeminiEmbeddingGenerator

__all__ = [
    "BaseEmbeddingGenerator",
    "DummyEmbeddingGenerator",
    "GeminiEmbeddingGenerator",
    "get_embedding_generator",
]


def get_embedding_generator(provider: str = "gemini") -> BaseEmbeddingGenerator:
    """
    Factory function to get an embedding generator by provider.

    Args:
        provider: 'gemini' or 'dummy'

    Raises:
        ValueError: If provider is unknown
    """
    provider = provider.lower()
    if provider == "gemini":
        return GeminiEmbeddingGenerator()
    if provider == "dummy":
        return DummyEmbeddingGenerator(dimension=settings.embedding_dimension)

    raise ValueError(
        f"Unknown embedding provider: {provider}. Available: gemini, dummy"
    )

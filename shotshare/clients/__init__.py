"""Adapters over the generative AI provider."""
from .base import GroundedChunk, GroundedModelClient, IndexOperation, RetrievalIndexClient
from .gemini import FileSearchIndexClient, GeminiGroundedModel, get_genai_client

__all__ = [
    "GroundedChunk",
    "GroundedModelClient",
    "IndexOperation",
    "RetrievalIndexClient",
    "FileSearchIndexClient",
    "GeminiGroundedModel",
    "get_genai_client",
]

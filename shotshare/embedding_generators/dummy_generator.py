"""Deterministic embedding generator for tests and offline development."""
import hashlib
from typing import List

import numpy as np

from shotshare.core.exceptions import EmbeddingGenerationFailed
from .base import BaseEmbeddingGenerator


class DummyEmbeddingGenerator(BaseEmbeddingGenerator):
    """
    Produces a unit vector seeded from the text's SHA-256.

    Identical text always maps to the identical vector.
    """

    def __init__(self, dimension: int = 1536):
        self._dimension = dimension

    @property
    def model_name(self) -> str:
        return "dummy"

    @property
    def dimension(self) -> int:
        return self._dimension

    async def generate_text_embedding(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise EmbeddingGenerationFailed("Cannot embed empty text")

        seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
        rng = np.random.default_rng(seed)
        vector = rng.standard_normal(self._dimension).astype(np.float32)
        vector /= np.linalg.norm(vector)
        return vector.tolist()

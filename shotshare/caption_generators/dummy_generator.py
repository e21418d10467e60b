"""Offline caption generators."""
import io
import logging
from typing import Optional

from PIL import Image as PILImage, UnidentifiedImageError

from .base import BaseCaptionGenerator

logger = logging.getLogger(__name__)


class DummyCaptionGenerator(BaseCaptionGenerator):
    """
    Deterministic captions for local runs and tests.

    Photos with the same dimensions get the same caption, so their
    embeddings match exactly.
    """

    async def generate_caption(
        self,
        image_data: bytes,
        prompt: Optional[str] = None
    ) -> str:
        try:
            with PILImage.open(io.BytesIO(image_data)) as img:
                width, height = img.size
                mode = img.mode
        except (UnidentifiedImageError, OSError) as e:
            logger.warning(f"Dummy captioner could not read image: {e}")
            return ""

        orientation = "landscape" if width > height else "portrait" if height > width else "square"
        caption = f"[Dummy Caption] A {orientation} {mode} photo, {width}x{height} pixels."
        return f"{caption} {prompt}" if prompt else caption

    @property
    def generator_name(self) -> str:
        return "dummy"


class NoCaptionGenerator(BaseCaptionGenerator):
    """Captioning switched off."""

    async def generate_caption(
        self,
        image_data: bytes,
        prompt: Optional[str] = None
    ) -> str:
        return ""

    @property
    def generator_name(self) -> str:
        return "none"

"""Gemini vision caption generator."""
import logging
from typing import Optional

from google import genai
from google.genai import types

from shotshare.core.config import settings
from shotshare.imaging.format_sniffer import ImageFormat, detect_image_format
from .base import BaseCaptionGenerator

logger = logging.getLogger(__name__)

DEFAULT_CAPTION_PROMPT = """Describe this photograph in detail. Pay attention to:

1. **Subject**: what is in the picture (people, landscape, objects, ...)
2. **Composition**: placement and balance of elements
3. **Light and color**: lighting mood, color tone, contrast
4. **Atmosphere**: the feeling or impression the photo conveys
5. **Scene**: season, time of day, characteristics of the location (as far as can be inferred)
6. **Technique**: notable techniques such as bokeh, perspective or camera angle

Be specific and detailed so the description is useful for search."""


class GeminiCaptionGenerator(BaseCaptionGenerator):
    """Caption generator backed by a vision-capable Gemini model."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        client: Optional[genai.Client] = None
    ):
        self.api_key = api_key or settings.gemini_api_key
        self.model_name = model_name or settings.generation_model
        self._client = client

    @property
    def client(self) -> Optional[genai.Client]:
        if self._client is None and self.api_key:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate_caption(
        self,
        image_data: bytes,
        prompt: Optional[str] = None
    ) -> str:
        """
        Ask the model to describe the image.

        Returns "" when credentials are missing or the call fails.
        """
        if self.client is None:
            logger.error("GEMINI_API_KEY is not set; skipping caption generation")
            return ""

        image_format = detect_image_format(image_data)
        mime_type = image_format.content_type if image_format is not ImageFormat.UNKNOWN else "image/jpeg"

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=[
                    types.Part.from_bytes(data=image_data, mime_type=mime_type),
                    prompt or DEFAULT_CAPTION_PROMPT,
                ]
            )
            caption = response.text or ""
            logger.info(f"Caption generated ({len(caption)} chars)")
            return caption
        except Exception as e:
            logger.error(f"Caption generation failed: {e}")
            return ""

    @property
    def generator_name(self) -> str:
        return "gemini"

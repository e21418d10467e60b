"""Caption generator interface."""
from abc import ABC, abstractmethod
from typing import Optional


class BaseCaptionGenerator(ABC):
    """Turns an uploaded photo into the descriptive text that gets indexed and embedded."""

    @abstractmethod
    async def generate_caption(
        self,
        image_data: bytes,
        prompt: Optional[str] = None
    ) -> str:
        """
        Describe a photo.

        Never raises; an empty string means no caption, and the post is
        indexed from its description and EXIF alone.

        Args:
            image_data: Display-derivative bytes in a browser-decodable format
            prompt: Overrides the generator's default instructions

        Returns:
            Caption text, or ""
        """

    @property
    @abstractmethod
    def generator_name(self) -> str:
        """Short identifier used in logs and settings (CAPTION_GENERATOR)."""

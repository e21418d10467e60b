"""Thumbnail and display-size derivative generation."""
import asyncio
import io
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image as PILImage, ImageOps

from shotshare.core.config import settings
from shotshare.core.exceptions import DerivativeGenerationFailed
from shotshare.imaging.format_sniffer import ImageFormat, detect_image_format

logger = logging.getLogger(__name__)

# Formats browsers decode natively; anything else is re-encoded to JPEG
PASSTHROUGH_FORMATS = frozenset({ImageFormat.JPEG, ImageFormat.PNG, ImageFormat.WEBP, ImageFormat.GIF})


@dataclass
class DerivativeSet:
    """Generated assets for one upload."""

    thumbnail: bytes
    display: bytes
    display_format: ImageFormat
    width: int
    height: int


class DerivativeGenerator:
    """Produces a square thumbnail and a bounded display copy from source bytes."""

    def __init__(
        self,
        thumbnail_size: Optional[int] = None,
        thumbnail_quality: Optional[int] = None,
        display_max_dimension: Optional[int] = None,
        display_quality: Optional[int] = None
    ):
        self.thumbnail_size = thumbnail_size or settings.thumbnail_size
        self.thumbnail_quality = thumbnail_quality or settings.thumbnail_quality
        self.display_max_dimension = display_max_dimension or settings.display_max_dimension
        self.display_quality = display_quality or settings.display_quality

    def create_thumbnail(self, data: bytes) -> bytes:
        """
        Cover-fit the image into a fixed square, cropping from the center.

        Raises:
            DerivativeGenerationFailed: If the source cannot be decoded
        """
        try:
            with PILImage.open(io.BytesIO(data)) as img:
                if img.mode != "RGB":
                    img = img.convert("RGB")

                thumb = ImageOps.fit(
                    img,
                    (self.thumbnail_size, self.thumbnail_size),
                    method=PILImage.Resampling.LANCZOS,
                    centering=(0.5, 0.5)
                )

                output = io.BytesIO()
                thumb.save(output, "JPEG", quality=self.thumbnail_quality)
                return output.getvalue()
        except Exception as e:
            logger.error(f"Thumbnail generation failed: {e}")
            raise DerivativeGenerationFailed(f"Failed to generate thumbnail: {e}")

    def create_display_version(self, data: bytes) -> bytes:
        """
        Bound the image to ``display_max_dimension`` on both sides.

        Web-format sources already within the bound are returned unchanged.
        Larger ones are scaled down to fit inside, preserving aspect ratio.
        Other decodable formats (BMP, TIFF, ...) are always re-encoded to JPEG.

        Raises:
            DerivativeGenerationFailed: If the source cannot be decoded
        """
        try:
            with PILImage.open(io.BytesIO(data)) as img:
                width, height = img.size
                fits = width <= self.display_max_dimension and height <= self.display_max_dimension
                if fits and detect_image_format(data) in PASSTHROUGH_FORMATS:
                    return data

                if img.mode != "RGB":
                    img = img.convert("RGB")

                new_size = self._calculate_display_size(width, height)
                if new_size != (width, height):
                    img = img.resize(new_size, PILImage.Resampling.LANCZOS)

                output = io.BytesIO()
                img.save(output, "JPEG", quality=self.display_quality)
                return output.getvalue()
        except Exception as e:
            logger.error(f"Display version generation failed: {e}")
            raise DerivativeGenerationFailed(f"Failed to generate display version: {e}")

    async def generate(self, data: bytes) -> DerivativeSet:
        """Run both derivative operations concurrently on the same source bytes."""
        thumbnail, display = await asyncio.gather(
            asyncio.to_thread(self.create_thumbnail, data),
            asyncio.to_thread(self.create_display_version, data),
        )

        width, height = self._measure(display)
        display_format = detect_image_format(display)

        return DerivativeSet(
            thumbnail=thumbnail,
            display=display,
            display_format=display_format,
            width=width,
            height=height
        )

    def _calculate_display_size(self, width: int, height: int) -> Tuple[int, int]:
        """Fit inside the square bound; never enlarges."""
        scale = min(self.display_max_dimension / width, self.display_max_dimension / height, 1.0)
        return (max(1, int(width * scale)), max(1, int(height * scale)))

    @staticmethod
    def _measure(data: bytes) -> Tuple[int, int]:
        try:
            with PILImage.open(io.BytesIO(data)) as img:
                return img.size
        except Exception as e:
            raise DerivativeGenerationFailed(f"Failed to read display dimensions: {e}")

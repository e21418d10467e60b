"""Unit tests for derivative generation."""
from __future__ import annotations

import io

import pytest
from PIL import Image as PILImage

from shotshare.core.exceptions import DerivativeGenerationFailed
from shotshare.imaging import DerivativeGenerator, ImageFormat
from tests.factories import make_image_bytes


def size_of(data: bytes):
    with PILImage.open(io.BytesIO(data)) as img:
        return img.size, img.format


@pytest.fixture
def generator():
    return DerivativeGenerator(
        thumbnail_size=400,
        thumbnail_quality=80,
        display_max_dimension=2000,
        display_quality=90
    )


class TestThumbnail:
    """Test square thumbnails."""

    def test_landscape_is_cropped_square(self, generator):
        thumb = generator.create_thumbnail(make_image_bytes(1200, 600))
        assert size_of(thumb) == ((400, 400), "JPEG")

    def test_small_source_is_upscaled_to_square(self, generator):
        """The thumbnail edge is fixed regardless of source size."""
        thumb = generator.create_thumbnail(make_image_bytes(100, 300, fmt="PNG"))
        assert size_of(thumb) == ((400, 400), "JPEG")

    def test_undecodable_source(self, generator):
        with pytest.raises(DerivativeGenerationFailed):
            generator.create_thumbnail(b"\xff\xd8\xff" + b"\x00" * 64)


class TestDisplayVersion:
    """Test bounded display copies."""

    def test_within_bound_is_unchanged(self, generator):
        source = make_image_bytes(1600, 1200, fmt="PNG")
        assert generator.create_display_version(source) == source

    def test_non_web_format_within_bound_is_reencoded(self, generator):
        """A small BMP is decodable but not browser-safe, so it becomes a JPEG."""
        display = generator.create_display_version(make_image_bytes(100, 80, fmt="BMP"))
        assert size_of(display) == ((100, 80), "JPEG")

    def test_oversize_is_fit_inside(self, generator):
        display = generator.create_display_version(make_image_bytes(4000, 3000))
        assert size_of(display) == ((2000, 1500), "JPEG")

    def test_portrait_keeps_aspect_ratio(self, generator):
        display = generator.create_display_version(make_image_bytes(1000, 4000))
        assert size_of(display) == ((500, 2000), "JPEG")

    def test_display_size_never_enlarges(self, generator):
        assert generator._calculate_display_size(800, 600) == (800, 600)
        assert generator._calculate_display_size(8000, 2000) == (2000, 500)


@pytest.mark.asyncio
class TestGenerate:
    """Test the combined derivative set."""

    async def test_large_square_source(self, generator):
        """A 5000x5000 upload yields a 2000px display and a 400px thumbnail."""
        result = await generator.generate(make_image_bytes(5000, 5000))

        assert (result.width, result.height) == (2000, 2000)
        assert size_of(result.thumbnail)[0] == (400, 400)
        assert result.display_format == ImageFormat.JPEG

    async def test_small_png_keeps_its_format(self, generator):
        result = await generator.generate(make_image_bytes(300, 200, fmt="PNG"))

        assert result.display_format == ImageFormat.PNG
        assert (result.width, result.height) == (300, 200)

    async def test_small_bmp_is_stored_as_jpeg(self, generator):
        result = await generator.generate(make_image_bytes(100, 80, fmt="BMP"))

        assert result.display_format == ImageFormat.JPEG
        assert result.display[:3] == b"\xff\xd8\xff"
        assert (result.width, result.height) == (100, 80)

    async def test_failure_propagates(self, generator):
        with pytest.raises(DerivativeGenerationFailed):
            await generator.generate(b"definitely not an image")

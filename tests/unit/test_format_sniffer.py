"""Unit tests for image format detection."""
from __future__ import annotations

import pytest

from shotshare.imaging import ImageFormat, detect_image_format, is_heic
from tests.factories import make_image_bytes


def ftyp(brand: bytes) -> bytes:
    return b"\x00\x00\x00\x18ftyp" + brand + b"\x00\x00\x00\x00mif1heic"


class TestDetectImageFormat:
    """Test detect_image_format."""

    @pytest.mark.parametrize("brand", [b"heic", b"heix", b"hevc", b"hevx", b"mif1", b"msf1", b"avif"])
    def test_heic_brands(self, brand):
        """Every HEIC-family brand is detected."""
        assert detect_image_format(ftyp(brand)) == ImageFormat.HEIC
        assert is_heic(ftyp(brand))

    def test_unrelated_ftyp_brand(self):
        """An MP4 ftyp box is not an image."""
        assert detect_image_format(ftyp(b"isom")) == ImageFormat.UNKNOWN

    def test_real_encodings(self):
        """Signatures of files Pillow writes are recognized."""
        assert detect_image_format(make_image_bytes(fmt="JPEG")) == ImageFormat.JPEG
        assert detect_image_format(make_image_bytes(fmt="PNG")) == ImageFormat.PNG
        assert detect_image_format(make_image_bytes(fmt="WEBP")) == ImageFormat.WEBP
        assert detect_image_format(make_image_bytes(fmt="GIF")) == ImageFormat.GIF

    def test_short_input_is_unknown(self):
        """Fewer than 12 bytes never classifies, even with a valid prefix."""
        assert detect_image_format(b"\xff\xd8\xff\xe0") == ImageFormat.UNKNOWN
        assert detect_image_format(b"") == ImageFormat.UNKNOWN
        assert not is_heic(b"\x00\x00\x00\x18ftyp")

    def test_garbage_is_unknown(self):
        assert detect_image_format(b"not an image at all") == ImageFormat.UNKNOWN

    def test_content_types(self):
        assert ImageFormat.JPEG.content_type == "image/jpeg"
        assert ImageFormat.HEIC.content_type == "image/heic"
        assert ImageFormat.UNKNOWN.content_type == "application/octet-stream"

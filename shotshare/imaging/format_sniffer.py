"""Image format detection by magic bytes.

Only the first 12 bytes are inspected; nothing is decoded. The result decides
whether an upload needs HEIC pre-conversion before derivative generation.
"""
from enum import Enum

HEADER_SIZE = 12

# Brand identifiers found at offset 8 of an ISO-BMFF ``ftyp`` box.
HEIC_BRANDS = frozenset({
    b"heic",  # HEIC
    b"heix",  # HEIC with extensions
    b"hevc",  # HEVC sequence
    b"hevx",  # HEVC sequence with extensions
    b"mif1",  # HEIF image
    b"msf1",  # HEIF sequence
    b"avif",  # AV1 image
})

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class ImageFormat(str, Enum):
    """Detected container format of an upload."""

    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    GIF = "gif"
    HEIC = "heic"
    UNKNOWN = "unknown"

    @property
    def content_type(self) -> str:
        if self is ImageFormat.UNKNOWN:
            return "application/octet-stream"
        return f"image/{self.value}"


def is_heic(data: bytes) -> bool:
    """True if ``data`` starts with an ``ftyp`` box carrying a HEIC-family brand."""
    if len(data) < HEADER_SIZE:
        return False
    return data[4:8] == b"ftyp" and bytes(data[8:12]) in HEIC_BRANDS


def detect_image_format(data: bytes) -> ImageFormat:
    """
    Classify an image payload by its signature.

    Args:
        data: Raw upload bytes

    Returns:
        The detected format, or ``ImageFormat.UNKNOWN`` for unrecognized or
        truncated (< 12 bytes) input
    """
    if data is None or len(data) < HEADER_SIZE:
        return ImageFormat.UNKNOWN

    header = bytes(data[:HEADER_SIZE])

    if is_heic(header):
        return ImageFormat.HEIC
    if header[:3] == b"\xff\xd8\xff":
        return ImageFormat.JPEG
    if header[:8] == PNG_SIGNATURE:
        return ImageFormat.PNG
    if header[:4] == b"RIFF" and header[8:12] == b"WEBP":
        return ImageFormat.WEBP
    if header[:6] in (b"GIF87a", b"GIF89a"):
        return ImageFormat.GIF

    return ImageFormat.UNKNOWN

"""Image inspection and processing."""
from .format_sniffer import ImageFormat, detect_image_format, is_heic
from .heic import convert_heic_to_jpeg
from .exif import extract_exif
from .derivatives import DerivativeGenerator, DerivativeSet

__all__ = [
    "ImageFormat",
    "detect_image_format",
    "is_heic",
    "convert_heic_to_jpeg",
    "extract_exif",
    "DerivativeGenerator",
    "DerivativeSet",
]

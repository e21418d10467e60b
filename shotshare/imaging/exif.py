"""EXIF extraction with Pillow."""
import io
import logging
import math
from datetime import datetime
from typing import Any, Dict, Optional

from PIL import Image as PILImage, ExifTags
from pydantic import ValidationError

from shotshare.models.schemas import ExifMetadata

# Registers the HEIF opener so HEIC uploads can be read directly.
import shotshare.imaging.heic  # noqa: F401

logger = logging.getLogger(__name__)

WHITE_BALANCE_MODES = {0: "Auto", 1: "Manual"}


def _number(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, (tuple, list)):
        if not value:
            return None
        value = value[0]
    try:
        number = float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    # Zero-denominator rationals read back as nan
    return number if math.isfinite(number) else None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    value = str(value).strip("\x00 ").strip()
    return value or None


def format_shutter_speed(exposure_time: Any) -> Optional[str]:
    """Render an exposure time as '1/250' or '2s'."""
    seconds = _number(exposure_time)
    if not seconds:
        return None
    if seconds >= 1:
        return f"{seconds:g}s"
    return f"1/{round(1 / seconds)}"


def _format_date_time(raw: Any) -> Optional[str]:
    text = _text(raw)
    if not text:
        return None
    try:
        return datetime.strptime(text, "%Y:%m:%d %H:%M:%S").isoformat()
    except ValueError:
        return text


def _readable_tags(img: PILImage.Image) -> Dict[str, Any]:
    exif = img.getexif()
    tags: Dict[str, Any] = {}

    for k, v in exif.items():
        tags[ExifTags.TAGS.get(k, str(k))] = v

    # Camera settings live in the Exif sub-IFD.
    for k, v in exif.get_ifd(ExifTags.IFD.Exif).items():
        tags[ExifTags.TAGS.get(k, str(k))] = v

    return tags


def extract_exif(data: bytes) -> ExifMetadata:
    """
    Extract camera metadata from image bytes.

    Never raises: unreadable input or a missing EXIF block yields an empty
    ``ExifMetadata``. Each field is populated only when its tag is present.
    """
    try:
        with PILImage.open(io.BytesIO(data)) as img:
            tags = _readable_tags(img)
            size = img.size
    except Exception as e:
        logger.warning(f"Could not read EXIF: {e}")
        return ExifMetadata()

    if not tags:
        return ExifMetadata()

    iso = _number(tags.get("ISOSpeedRatings") or tags.get("PhotographicSensitivity"))
    white_balance = tags.get("WhiteBalance")
    width = _number(tags.get("ExifImageWidth")) or _number(tags.get("ImageWidth")) or size[0]
    height = _number(tags.get("ExifImageHeight")) or _number(tags.get("ImageLength")) or size[1]

    try:
        return ExifMetadata(
            iso=int(iso) if iso else None,
            f_value=_number(tags.get("FNumber")),
            shutter_speed=format_shutter_speed(tags.get("ExposureTime")),
            exposure_compensation=_number(tags.get("ExposureBiasValue")),
            focal_length=_number(tags.get("FocalLength")),
            white_balance=WHITE_BALANCE_MODES.get(white_balance) if white_balance is not None else None,
            camera_make=_text(tags.get("Make")),
            camera_model=_text(tags.get("Model")),
            lens=_text(tags.get("LensModel")),
            date_time=_format_date_time(tags.get("DateTimeOriginal") or tags.get("DateTime")),
            width=int(width) if width else None,
            height=int(height) if height else None,
        )
    except (ValidationError, TypeError, ValueError) as e:
        logger.warning(f"Discarding unusable EXIF: {e}")
        return ExifMetadata()

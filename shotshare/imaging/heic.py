"""HEIC/HEIF to JPEG pre-conversion."""
import io
import logging

from PIL import Image as PILImage, ExifTags, ImageOps
from pillow_heif import register_heif_opener

from shotshare.core.exceptions import DerivativeGenerationFailed

logger = logging.getLogger(__name__)

register_heif_opener()


def convert_heic_to_jpeg(data: bytes, quality: int = 95) -> bytes:
    """
    Decode a HEIC-family container and re-encode it as JPEG.

    EXIF is carried over so metadata extraction still works on the result.

    Raises:
        DerivativeGenerationFailed: If the container cannot be decoded
    """
    try:
        with PILImage.open(io.BytesIO(data)) as img:
            exif = img.getexif()
            img = ImageOps.exif_transpose(img)
            if img.mode != "RGB":
                img = img.convert("RGB")

            # Pixels are already upright
            exif.pop(ExifTags.Base.Orientation, None)

            output = io.BytesIO()
            save_kwargs = {"quality": quality}
            if exif:
                save_kwargs["exif"] = exif.tobytes()
            img.save(output, "JPEG", **save_kwargs)
            return output.getvalue()
    except Exception as e:
        logger.error(f"HEIC conversion failed: {e}")
        raise DerivativeGenerationFailed(f"HEIC conversion failed: {e}")

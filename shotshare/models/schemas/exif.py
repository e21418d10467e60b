"""EXIF metadata schema."""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ExifMetadata(BaseModel):
    """
    Camera metadata extracted from an upload.

    Every field is independently optional. A missing field is stored as an
    absent key, never as a zero/false default.
    """

    iso: Optional[int] = Field(default=None, ge=0, description="ISO sensitivity")
    f_value: Optional[float] = Field(default=None, ge=0, description="Aperture f-number")
    shutter_speed: Optional[str] = Field(default=None, description="Exposure time, e.g. '1/250'")
    exposure_compensation: Optional[float] = Field(default=None, description="Exposure bias in EV")
    focal_length: Optional[float] = Field(default=None, ge=0, description="Focal length in mm")
    white_balance: Optional[str] = Field(default=None, description="White balance mode")
    camera_make: Optional[str] = Field(default=None, description="Camera manufacturer")
    camera_model: Optional[str] = Field(default=None, description="Camera model")
    lens: Optional[str] = Field(default=None, description="Lens model")
    date_time: Optional[str] = Field(default=None, description="Capture time (ISO-8601)")
    width: Optional[int] = Field(default=None, ge=1, description="Pixel width")
    height: Optional[int] = Field(default=None, ge=1, description="Pixel height")

    def to_storage(self) -> Dict[str, Any]:
        """Serialize with absent fields omitted."""
        return self.model_dump(exclude_none=True)

    @classmethod
    def from_storage(cls, data: Optional[Dict[str, Any]]) -> "ExifMetadata":
        return cls(**(data or {}))

    def is_empty(self) -> bool:
        return not self.to_storage()

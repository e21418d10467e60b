"""Common Pydantic schemas used across the application."""
from pydantic import BaseModel, Field


class OffsetPaginationParams(BaseModel):
    """Offset pagination used by the feed listing."""

    limit: int = Field(default=20, description="Number of posts to return (1-100)")
    offset: int = Field(default=0, description="Number of posts to skip")


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str

    class Config:
        from_attributes = True

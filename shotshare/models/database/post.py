"""Post database model."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, Integer, DateTime, JSON, Uuid

from shotshare.core.database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how the columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Post(Base):
    """A published photograph with its derivative URLs and EXIF snapshot."""

    __tablename__ = "posts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, nullable=False, index=True)
    image_path = Column(Text, nullable=False)
    thumbnail_path = Column(Text, nullable=False)
    image_url = Column(Text, nullable=False)
    thumbnail_url = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    exif_data = Column(JSON, nullable=True)
    index_document_ref = Column(String(512), nullable=True)
    visibility = Column(String(20), default="public", nullable=False, index=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )

    @property
    def is_public(self) -> bool:
        return self.visibility == "public"

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, owner={self.owner_id}, indexed={self.index_document_ref is not None})>"

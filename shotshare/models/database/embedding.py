"""Post embedding database model."""
import uuid

from sqlalchemy import Column, String, Integer, DateTime, JSON, ForeignKey, Uuid

from shotshare.core.database import Base
from .post import utcnow


class PostEmbedding(Base):
    """Caption embedding for a post, written after indexing and possibly absent."""

    __tablename__ = "post_embeddings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id = Column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True
    )
    embedding = Column(JSON, nullable=False)  # list[float]
    model_name = Column(String(100), nullable=False)
    dimension = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<PostEmbedding(post_id={self.post_id}, model='{self.model_name}', dim={self.dimension})>"

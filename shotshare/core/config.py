"""Application configuration management."""
import json
import logging
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = Field(..., description="SQLAlchemy async database URL")
    database_pool_size: int = Field(default=20, description="Database connection pool size")
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")

    # Blob storage
    storage_root: Path = Field(default=Path("./storage"), description="Root directory of the blob store")
    public_base_url: str = Field(
        default="http://localhost:8002/media",
        description="Public URL prefix for stored blobs"
    )

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8002, description="API port")
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="CORS allowed origins"
    )

    # Generative AI provider
    gemini_api_key: Optional[str] = Field(default=None, description="Gemini API key")
    generation_model: str = Field(
        default="gemini-2.5-flash",
        description="Model used for captions and grounded search"
    )
    caption_generator: str = Field(
        default="gemini",
        description="Caption generator type (gemini, dummy, none)"
    )
    embedding_provider: str = Field(
        default="gemini",
        description="Embedding generator type (gemini, dummy)"
    )
    embedding_model: str = Field(default="gemini-embedding-001", description="Embedding model name")
    embedding_dimension: int = Field(default=1536, description="Embedding output dimensionality")

    # Retrieval index
    file_search_store_name: Optional[str] = Field(
        default=None,
        description="File Search store that scopes indexing and grounded search"
    )
    index_poll_interval_seconds: float = Field(default=1.0, description="Seconds between indexing polls")
    index_max_poll_attempts: int = Field(default=60, description="Polls before indexing times out")

    # Derivatives
    thumbnail_size: int = Field(default=400, description="Square thumbnail edge in pixels")
    thumbnail_quality: int = Field(default=80, description="Thumbnail JPEG quality (1-100)")
    display_max_dimension: int = Field(default=2000, description="Max width or height of display image")
    display_quality: int = Field(default=90, description="Display JPEG quality (1-100)")

    # Upload validation
    max_upload_size_mb: int = Field(default=20, description="Maximum upload size in MB")
    max_description_length: int = Field(default=2000, description="Maximum description length")

    # Similarity
    similarity_threshold: float = Field(default=0.85, description="Cosine similarity floor")
    similarity_cache_ttl_hours: int = Field(default=24, description="Similarity cache freshness window")
    similar_default_limit: int = Field(default=10, description="Default number of similar posts")
    fallback_recent_limit: int = Field(default=20, description="Posts returned by degraded listings")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[Path] = Field(default=None, description="Log file path")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    def __init__(self, **kwargs):
        """Initialize settings and resolve all paths."""
        super().__init__(**kwargs)
        self.storage_root = self.storage_root.resolve()

        if self.log_file:
            self.log_file = self.log_file.resolve()

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def similarity_cache_ttl_seconds(self) -> int:
        return self.similarity_cache_ttl_hours * 3600

    def ensure_directories_exist(self):
        """Create the storage root (and log directory) if they don't exist."""
        self.storage_root.mkdir(parents=True, exist_ok=True)

        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)


# Singleton instance - reads from the environment / .env file.
# Tests set DATABASE_URL before importing the application.
try:
    settings = Settings()
except Exception as e:
    logger.error(f"Error loading configuration: {e}")
    logger.error("Set DATABASE_URL (and optionally GEMINI_API_KEY, FILE_SEARCH_STORE_NAME) in .env")
    raise

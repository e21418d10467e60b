"""Blob storage service backed by the local filesystem."""
import asyncio
import logging
from pathlib import Path
from typing import Optional
from uuid import UUID

from shotshare.core.config import settings
from shotshare.core.exceptions import StorageException

logger = logging.getLogger(__name__)


class StorageService:
    """
    Stores derivative blobs under ``storage_root``.

    Paths are relative and namespaced ``{owner_id}/{post_id}/{filename}``;
    ``public_url`` maps a path to where the API serves it.
    """

    def __init__(self, root: Optional[Path] = None, public_base_url: Optional[str] = None):
        """
        Initialize storage service with configured paths.

        Args:
            root: Storage root directory (defaults to settings)
            public_base_url: URL prefix the root is served under
        """
        self.root = Path(root or settings.storage_root).resolve()
        self.public_base_url = (public_base_url or settings.public_base_url).rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def build_path(owner_id: UUID, post_id: UUID, filename: str) -> str:
        return f"{owner_id}/{post_id}/{filename}"

    def _resolve(self, path: str) -> Path:
        if not path or path.startswith("/") or ".." in Path(path).parts:
            raise StorageException(f"Invalid storage path: {path!r}")
        return self.root / path

    async def upload(self, data: bytes, path: str, content_type: str) -> str:
        """
        Save binary data at ``path``.

        Args:
            data: Blob bytes
            path: Relative storage path
            content_type: MIME type (recorded in the log only; the filesystem keeps none)

        Returns:
            The stored path

        Raises:
            StorageException: If save fails
        """
        file_path = self._resolve(path)

        def _write():
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, "wb") as f:
                f.write(data)

        try:
            await asyncio.to_thread(_write)
        except Exception as e:
            raise StorageException(f"Failed to save file {path}: {e}")

        logger.debug(f"Stored {path} ({content_type}, {len(data)} bytes)")
        return path

    async def read(self, path: str) -> bytes:
        """
        Read a stored blob.

        Raises:
            StorageException: If the blob is missing or unreadable
        """
        file_path = self._resolve(path)

        def _read() -> bytes:
            with open(file_path, "rb") as f:
                return f.read()

        try:
            return await asyncio.to_thread(_read)
        except FileNotFoundError:
            raise StorageException(f"File not found: {path}")
        except Exception as e:
            raise StorageException(f"Failed to read file {path}: {e}")

    async def delete(self, path: str) -> bool:
        """
        Delete a blob and prune its now-empty parent directories.

        Returns:
            True if deleted, False if the blob didn't exist

        Raises:
            StorageException: If deletion fails
        """
        file_path = self._resolve(path)

        def _delete() -> bool:
            if not file_path.exists():
                return False
            file_path.unlink()
            parent = file_path.parent
            while parent != self.root and parent.is_dir() and not any(parent.iterdir()):
                parent.rmdir()
                parent = parent.parent
            return True

        try:
            return await asyncio.to_thread(_delete)
        except Exception as e:
            raise StorageException(f"Failed to delete file {path}: {e}")

    def exists(self, path: str) -> bool:
        file_path = self._resolve(path)
        return file_path.exists() and file_path.is_file()

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{path}"

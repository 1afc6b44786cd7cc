"""Blob storage for uploaded media.

The core only ever holds opaque keys; payloads live here.
"""
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from reviewgate.common.config import settings

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    """Storage for binary payloads addressed by key."""

    @abstractmethod
    async def put(self, key: str, data: bytes) -> None:
        """Store content under ``key``."""
        pass

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Return the content stored under ``key``.

        Raises:
            FileNotFoundError: If nothing is stored under ``key``
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete content; returns False when nothing was stored under ``key``."""
        pass


class LocalBlobStore(BlobStore):
    """Store content on the local filesystem."""

    def __init__(self, base_path: str | None = None):
        self.base_path = Path(base_path or settings.upload_dir).resolve()

    def _key_to_path(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if not path.is_relative_to(self.base_path):
            raise ValueError(f"Blob key escapes storage root: {key}")
        return path

    async def put(self, key: str, data: bytes) -> None:
        path = self._key_to_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def get(self, key: str) -> bytes:
        path = self._key_to_path(key)
        if not path.exists():
            raise FileNotFoundError(f"No blob stored under {key}")
        return path.read_bytes()

    async def delete(self, key: str) -> bool:
        path = self._key_to_path(key)
        if path.exists():
            path.unlink()
            return True
        return False


async def delete_blobs_safely(blob_store: BlobStore, keys: list[str]) -> int:
    """Best-effort removal of blobs whose metadata is already gone.

    Failures are logged and never raised; the metadata delete stands.

    Returns:
        Number of keys removed
    """
    removed = 0
    for key in keys:
        try:
            if await blob_store.delete(key):
                removed += 1
        except Exception:
            logger.exception("Failed to delete blob %s", key)
    return removed


_blob_store: BlobStore | None = None


def get_blob_store() -> BlobStore:
    """Dependency for getting the configured blob store."""
    global _blob_store
    if _blob_store is None:
        _blob_store = LocalBlobStore()
    return _blob_store

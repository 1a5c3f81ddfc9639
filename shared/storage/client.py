"""
Blob Store Interface
====================

Abstract base class for document storage plus the path convention
shared by uploads.

Version: 0.1.0
"""

import re
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from enum import Enum

from shared.config import settings
from shared.logging import get_logger

logger = get_logger(__name__)


class Bucket(str, Enum):
    """Storage buckets."""

    SUBMISSIONS = "submissions"
    REGULATIONS = "regulations"


class StorageError(Exception):
    """Raised when the blob store cannot complete an operation."""

    def __init__(self, message: str, bucket: str | None = None, path: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.bucket = bucket
        self.path = path


_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.\-]+")


def build_object_path(user_id: str, filename: str, timestamp: datetime | None = None) -> str:
    """
    Build the object path for an upload.

    Args:
        user_id: Owner of the file
        filename: Original client filename
        timestamp: Upload time (default now)

    Returns:
        ``{user_id}/{epoch_millis}_{filename}``
    """
    ts = timestamp or datetime.now(UTC)
    safe_name = _UNSAFE_FILENAME_CHARS.sub("_", filename).strip("_") or "document.pdf"
    return f"{user_id}/{int(ts.timestamp() * 1000)}_{safe_name}"


class BlobStore(ABC):
    """
    Abstract document store keyed by bucket and opaque path.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name."""
        ...

    @abstractmethod
    async def download(self, bucket: str, path: str) -> bytes:
        """
        Fetch an object's bytes.

        Raises:
            StorageError: If the object is missing or the backend fails
        """
        ...

    @abstractmethod
    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/pdf",
    ) -> str:
        """
        Store bytes at ``path``.

        Returns:
            The stored object path
        """
        ...

    @abstractmethod
    async def delete(self, bucket: str, paths: list[str]) -> None:
        """Remove objects; unknown paths are ignored."""
        ...


# Global store instance
_store: BlobStore | None = None


def get_blob_store() -> BlobStore:
    """
    Get the configured blob store.

    Supabase Storage when ``SUPABASE_URL`` and the service key are set,
    otherwise an in-process store (development and tests only).
    """
    global _store

    if _store is None:
        if settings.storage.is_configured:
            from shared.storage.supabase import SupabaseBlobStore

            _store = SupabaseBlobStore()
        else:
            from shared.storage.memory import InMemoryBlobStore

            if settings.is_production:
                raise StorageError("Supabase storage is not configured")
            _store = InMemoryBlobStore()

        logger.info("blob_store_initialized", backend=_store.name)

    return _store


def set_blob_store(store: BlobStore | None) -> None:
    """Override the global store (None resets it)."""
    global _store
    _store = store

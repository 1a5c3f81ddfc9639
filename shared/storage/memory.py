"""
In-Memory Blob Store
====================

Process-local blob store for development and tests.

Version: 0.1.0
"""

from shared.logging import get_logger
from shared.storage.client import BlobStore, StorageError

logger = get_logger(__name__)


class InMemoryBlobStore(BlobStore):
    """Blob store holding objects in a dict keyed by (bucket, path)."""

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str], bytes] = {}

    @property
    def name(self) -> str:
        return "memory"

    async def download(self, bucket: str, path: str) -> bytes:
        try:
            return self._objects[(bucket, path)]
        except KeyError:
            raise StorageError("Failed to download file: object not found", bucket, path) from None

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/pdf",
    ) -> str:
        self._objects[(bucket, path)] = data
        logger.debug("memory_blob_stored", bucket=bucket, path=path, size=len(data))
        return path

    async def delete(self, bucket: str, paths: list[str]) -> None:
        for path in paths:
            self._objects.pop((bucket, path), None)

    def exists(self, bucket: str, path: str) -> bool:
        """Check whether an object is stored."""
        return (bucket, path) in self._objects

"""
Supabase Blob Store
===================

Supabase Storage REST API over httpx.

Version: 0.1.0
"""

from urllib.parse import quote

import httpx

from shared.config import settings
from shared.logging import get_logger
from shared.storage.client import BlobStore, StorageError

logger = get_logger(__name__)


class SupabaseBlobStore(BlobStore):
    """
    Blob store backed by Supabase Storage.

    Uses the service-role key, so bucket row-level policies are bypassed.
    """

    def __init__(
        self,
        url: str | None = None,
        service_role_key: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._url = (url or settings.storage.url).rstrip("/")
        key = service_role_key or settings.storage.service_role_key.get_secret_value()
        if not self._url or not key:
            raise StorageError("Supabase storage URL or service role key not configured")

        self._base_api_url = f"{self._url}/storage/v1"
        self._headers = {
            "Authorization": f"Bearer {key}",
            "apikey": key,
        }
        self._timeout = timeout or settings.storage.timeout_seconds

    @property
    def name(self) -> str:
        return "supabase"

    def _object_url(self, bucket: str, path: str) -> str:
        return f"{self._base_api_url}/object/{bucket}/{quote(path)}"

    async def download(self, bucket: str, path: str) -> bytes:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(self._object_url(bucket, path), headers=self._headers)
        except httpx.HTTPError as e:
            logger.error("storage_download_failed", bucket=bucket, path=path, error=str(e))
            raise StorageError(f"Failed to download file: {e}", bucket, path) from e

        if response.status_code != 200:
            logger.error(
                "storage_download_failed",
                bucket=bucket,
                path=path,
                status_code=response.status_code,
            )
            raise StorageError(
                f"Failed to download file: HTTP {response.status_code}", bucket, path
            )

        logger.debug("storage_downloaded", bucket=bucket, path=path, size=len(response.content))
        return response.content

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/pdf",
    ) -> str:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    self._object_url(bucket, path),
                    headers={**self._headers, "Content-Type": content_type},
                    content=data,
                )
        except httpx.HTTPError as e:
            logger.error("storage_upload_failed", bucket=bucket, path=path, error=str(e))
            raise StorageError(f"Upload failed: {e}", bucket, path) from e

        if response.status_code != 200:
            logger.error(
                "storage_upload_failed",
                bucket=bucket,
                path=path,
                status_code=response.status_code,
                body=response.text,
            )
            raise StorageError(f"Upload failed: HTTP {response.status_code}", bucket, path)

        logger.info("storage_uploaded", bucket=bucket, path=path, size=len(data))
        return path

    async def delete(self, bucket: str, paths: list[str]) -> None:
        if not paths:
            return

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(
                    "DELETE",
                    f"{self._base_api_url}/object/{bucket}",
                    headers=self._headers,
                    json={"prefixes": paths},
                )
        except httpx.HTTPError as e:
            logger.error("storage_delete_failed", bucket=bucket, paths=paths, error=str(e))
            raise StorageError(f"Delete failed: {e}", bucket) from e

        if response.status_code != 200:
            raise StorageError(f"Delete failed: HTTP {response.status_code}", bucket)

        logger.info("storage_deleted", bucket=bucket, count=len(paths))

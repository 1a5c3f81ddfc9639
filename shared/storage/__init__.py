"""
Storage Module
==============

Blob storage for uploaded submissions and regulation documents.

Backends:
- Supabase Storage (REST, service-role key)
- In-memory (development/testing)

Usage:
    from shared.storage import Bucket, get_blob_store

    store = get_blob_store()
    pdf_bytes = await store.download(Bucket.SUBMISSIONS, "user-1/1730000000000_device.pdf")
"""

from shared.storage.client import (
    BlobStore,
    Bucket,
    StorageError,
    build_object_path,
    get_blob_store,
    set_blob_store,
)
from shared.storage.memory import InMemoryBlobStore

__all__ = [
    "BlobStore",
    "Bucket",
    "StorageError",
    "build_object_path",
    "get_blob_store",
    "set_blob_store",
    "InMemoryBlobStore",
]

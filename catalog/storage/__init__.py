"""
Blob Storage Package
Chunk staging and image variant storage.
"""

from typing import Optional

from ..config.settings import get_settings
from .blob_store import LocalBlobStore, StoragePaths

_store: Optional[LocalBlobStore] = None


def get_blob_store() -> LocalBlobStore:
    """Get blob store rooted at the configured storage directory (singleton)."""
    global _store
    if _store is None:
        _store = LocalBlobStore(get_settings().storage_root)
    return _store


def reset_blob_store() -> None:
    global _store
    _store = None


__all__ = ["LocalBlobStore", "StoragePaths", "get_blob_store", "reset_blob_store"]

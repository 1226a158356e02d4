from __future__ import annotations

from .disk_store import DiskJsonBlobStore
from .interfaces import BlobStore
from .memory_store import InMemoryBlobStore

__all__ = [
    "BlobStore",
    "DiskJsonBlobStore",
    "InMemoryBlobStore",
]

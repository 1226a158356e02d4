from __future__ import annotations

from .gateway import SyncGateway, is_version_below
from .namespace import Namespace, NamespaceStore
from .persistence import BlobStore, DiskJsonBlobStore, InMemoryBlobStore
from .scheduler import FlushScheduler
from .settings import Settings, get_settings
from .shared import enable_debug_logging, init_shared_defaults, shared_defaults, teardown_shared_defaults
from .store import DefaultsStore

__all__ = [
    "BlobStore",
    "DefaultsStore",
    "DiskJsonBlobStore",
    "FlushScheduler",
    "InMemoryBlobStore",
    "Namespace",
    "NamespaceStore",
    "Settings",
    "SyncGateway",
    "enable_debug_logging",
    "get_settings",
    "init_shared_defaults",
    "is_version_below",
    "shared_defaults",
    "teardown_shared_defaults",
]

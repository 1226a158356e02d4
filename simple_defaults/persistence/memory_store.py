from __future__ import annotations

import copy
import threading
from typing import Any

from .interfaces import BlobStore


class InMemoryBlobStore(BlobStore):
    """
    Thread-safe in-process blob store.

    Keeps deep copies of every saved mapping and counts saves and durable-sync
    requests, which makes it the natural backend for embedding and tests.
    """

    def __init__(self, initial: dict[str, dict[str, Any]] | None = None) -> None:
        self._lock = threading.Lock()
        self._blobs: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._save_counts: dict[str, int] = {}
        self._sync_count = 0

    def load(self, storage_key: str) -> dict[str, Any] | None:
        with self._lock:
            blob = self._blobs.get(storage_key)
            return copy.deepcopy(blob) if isinstance(blob, dict) else None

    def save(self, storage_key: str, mapping: dict[str, Any]) -> None:
        with self._lock:
            self._blobs[storage_key] = copy.deepcopy(mapping)
            self._save_counts[storage_key] = self._save_counts.get(storage_key, 0) + 1

    def request_durable_sync(self) -> None:
        with self._lock:
            self._sync_count += 1

    def save_count(self, storage_key: str) -> int:
        with self._lock:
            return self._save_counts.get(storage_key, 0)

    @property
    def sync_count(self) -> int:
        with self._lock:
            return self._sync_count

    def put_raw(self, storage_key: str, blob: Any) -> None:
        """Seed a blob as-is, bypassing save accounting (simulates pre-existing or corrupt data)."""
        with self._lock:
            self._blobs[storage_key] = blob

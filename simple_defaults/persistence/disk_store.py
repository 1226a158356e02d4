from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

from .interfaces import BlobStore
from .json_store import atomic_write_json, fsync_path, read_json
from .locks import DOCUMENT_LOCKS
from .paths import blob_path, ensure_dir

logger = logging.getLogger(__name__)


class DiskJsonBlobStore(BlobStore):
    """
    Stores one JSON document per storage key inside a directory:

    - <directory>/SimpleDefaults.Device.json
    - <directory>/SimpleDefaults.User.json

    Missing, empty or invalid documents load as None. Writes are atomic but
    not fsynced; request_durable_sync() fsyncs everything written since the
    previous call.
    """

    def __init__(self, directory: Path):
        self._directory = Path(directory)
        self._pending_lock = threading.Lock()
        # path -> save generation; a path is cleared only if not re-saved since its fsync
        self._pending: dict[Path, int] = {}

    def path_for(self, storage_key: str) -> Path:
        return blob_path(self._directory, storage_key)

    def load(self, storage_key: str) -> dict[str, Any] | None:
        path = self.path_for(storage_key)
        with DOCUMENT_LOCKS.hold(path):
            raw = read_json(path)
        if not isinstance(raw, dict):
            return None
        return raw

    def save(self, storage_key: str, mapping: dict[str, Any]) -> None:
        ensure_dir(self._directory)
        path = self.path_for(storage_key)
        with DOCUMENT_LOCKS.hold(path):
            atomic_write_json(path, mapping)
        with self._pending_lock:
            self._pending[path] = self._pending.get(path, 0) + 1

    def request_durable_sync(self) -> None:
        with self._pending_lock:
            pending = dict(self._pending)
        if not pending:
            return
        for path in sorted(pending):
            with DOCUMENT_LOCKS.hold(path):
                if path.exists():
                    fsync_path(path)
        fsync_path(self._directory)
        # Nothing is cleared unless every fsync succeeded, so failures are retried.
        with self._pending_lock:
            for path, generation in pending.items():
                if self._pending.get(path) == generation:
                    del self._pending[path]
        logger.debug("DURABLE SYNC: fsynced %d document(s) in %s", len(pending), self._directory)

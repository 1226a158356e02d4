from __future__ import annotations

import contextlib
import threading
from pathlib import Path
from typing import Iterator


class DocumentLockRegistry:
    """
    One lock per resolved document path, shared by every blob store in the
    process, so two stores pointed at the same directory never interleave
    a read with a replace of the same file.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Path, threading.Lock] = {}

    def lock_for(self, path: Path) -> threading.Lock:
        key = path.resolve()
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())

    @contextlib.contextmanager
    def hold(self, path: Path) -> Iterator[None]:
        with self.lock_for(path):
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


DOCUMENT_LOCKS = DocumentLockRegistry()

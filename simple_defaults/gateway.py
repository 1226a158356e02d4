from __future__ import annotations

import logging
import re
from typing import Callable, Union

from .persistence.interfaces import BlobStore

logger = logging.getLogger(__name__)

SyncPredicate = Union[bool, Callable[[], bool]]

_LEADING_DIGITS = re.compile(r"\d+")


def _version_parts(version: str) -> list[int]:
    parts: list[int] = []
    for piece in version.strip().split("."):
        m = _LEADING_DIGITS.match(piece.strip())
        parts.append(int(m.group()) if m else 0)
    return parts


def is_version_below(current: str, threshold: str) -> bool:
    """
    Numeric dotted-version comparison: "7.1.2" < "8.0", "10.0" > "8.0".

    Missing components count as zero, so "8" == "8.0".
    """
    a = _version_parts(current)
    b = _version_parts(threshold)
    width = max(len(a), len(b))
    a += [0] * (width - len(a))
    b += [0] * (width - len(b))
    return a < b


class SyncGateway:
    """
    Requests a hard durable sync from the backing store, but only when the
    injected predicate says the store does not already sync often enough on
    its own. When it does, synchronize() is a silent no-op.
    """

    def __init__(self, store: BlobStore, needs_sync: SyncPredicate = True):
        self._store = store
        self._needs_sync = needs_sync

    @property
    def required(self) -> bool:
        if callable(self._needs_sync):
            try:
                return bool(self._needs_sync())
            except Exception as e:
                logger.warning("DURABLE SYNC: capability check failed, skipping: %r", e)
                return False
        return bool(self._needs_sync)

    def synchronize(self) -> bool:
        """Returns True when the backing store was actually asked to sync."""
        if not self.required:
            logger.debug("DURABLE SYNC: not required by backing store, skipped")
            return False
        try:
            self._store.request_durable_sync()
        except Exception as e:
            logger.warning("DURABLE SYNC: request failed: %r", e)
            return False
        return True

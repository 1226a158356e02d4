from __future__ import annotations

import copy
import enum
import logging
import threading
from typing import Any, Callable, Mapping

from pydantic import BaseModel, Field, ValidationError

from .values import MISSING, UnstorableValueError, cast_value, expected_type_for, to_stored

logger = logging.getLogger(__name__)

RejectedCallback = Callable[[str, Exception], None]


class Namespace(str, enum.Enum):
    DEVICE = "Device"
    USER = "User"

    def storage_key(self, root_key: str) -> str:
        return f"{root_key}.{self.value}"


class NamespaceDocument(BaseModel):
    """
    Shape of a persisted namespace: a flat mapping of string keys to values.

    Values are not constrained; typed reads decide what they accept.
    """

    entries: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_blob(cls, blob: Any) -> "NamespaceDocument":
        return cls.model_validate({"entries": blob}, strict=True)

    def to_blob(self) -> dict[str, Any]:
        return dict(self.entries)


class NamespaceStore:
    """
    In-memory key/value map for one namespace plus its dirty flag.

    Values are kept in their JSON form, so whatever a flush hands to the
    backing store is exactly what the map holds. Stored objects are replaced,
    never mutated in place, which lets reads convert outside the lock.
    Nothing here performs I/O.
    """

    def __init__(self, namespace: Namespace, on_rejected: RejectedCallback | None = None) -> None:
        self.namespace = namespace
        self._on_rejected = on_rejected
        self._lock = threading.Lock()
        self._entries: dict[str, Any] = {}
        self._dirty = False

    @property
    def dirty(self) -> bool:
        with self._lock:
            return self._dirty

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str, fallback: Any = None, expected: Any = None) -> Any:
        want = expected_type_for(fallback, expected)
        with self._lock:
            stored = self._entries.get(key, MISSING)
        if stored is MISSING:
            return fallback
        value = cast_value(stored, want)
        if value is MISSING:
            return fallback
        return value

    def set(self, key: str, value: Any) -> None:
        # None removes the key so that "present" always means "has a value".
        rejected: UnstorableValueError | None = None
        stored: Any = None
        if value is not None:
            try:
                stored = to_stored(value)
            except UnstorableValueError as e:
                # Drop just this key: it behaves as if never set.
                rejected = e
        with self._lock:
            if stored is None:
                self._entries.pop(key, None)
            else:
                self._entries[key] = stored
            self._dirty = True
        if rejected is not None:
            logger.warning("SET: dropping %s key %r: %r", self.namespace.value.lower(), key, rejected)
            if self._on_rejected is not None:
                self._on_rejected(key, rejected)

    def reset(self) -> None:
        with self._lock:
            self._entries = {}
            self._dirty = True

    def load(self, blob: Mapping[str, Any] | None) -> bool:
        """
        Replace the entries with a previously persisted blob.

        Returns False (leaving the namespace empty) when the blob is absent or
        not a string-keyed mapping. Values without a JSON form are skipped.
        Never marks the namespace dirty.
        """
        if blob is None:
            return False
        try:
            doc = NamespaceDocument.from_blob(blob)
        except ValidationError as e:
            logger.debug("LOAD: discarding malformed %s blob: %s", self.namespace.value, e)
            return False
        entries: dict[str, Any] = {}
        for key, value in doc.to_blob().items():
            if value is None:
                continue
            try:
                entries[key] = to_stored(value)
            except UnstorableValueError as e:
                logger.debug("LOAD: skipping %s key %r: %s", self.namespace.value, key, e)
        with self._lock:
            self._entries = entries
            self._dirty = False
        return True

    def take_snapshot(self) -> dict[str, Any] | None:
        """
        Atomically check-and-clear the dirty flag.

        Returns a deep copy of the entries when the namespace was dirty, None
        otherwise. A write landing after this call re-dirties the namespace and
        is picked up by the next flush.
        """
        with self._lock:
            if not self._dirty:
                return None
            snapshot = copy.deepcopy(self._entries)
            self._dirty = False
            return snapshot

    def mark_dirty(self) -> None:
        with self._lock:
            self._dirty = True

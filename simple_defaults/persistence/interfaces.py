from __future__ import annotations

from typing import Any, Protocol


class BlobStore(Protocol):
    """
    Durable key/value blob store the defaults are persisted into.

    One JSON-like mapping is stored per storage key.
    """

    def load(self, storage_key: str) -> dict[str, Any] | None:
        """Return the mapping saved under storage_key, or None if there is none."""
        ...

    def save(self, storage_key: str, mapping: dict[str, Any]) -> None:
        """Persist the full mapping. May be buffered until request_durable_sync()."""
        ...

    def request_durable_sync(self) -> None:
        """Best-effort request to make every saved mapping durable now."""
        ...

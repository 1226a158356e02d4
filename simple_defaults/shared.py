"""Process-wide defaults handle.

`init_shared_defaults()` creates it explicitly, `shared_defaults()` creates it
lazily from environment settings on first use, and teardown happens through
`teardown_shared_defaults()` or automatically at interpreter exit.
"""

from __future__ import annotations

import atexit
import logging
import threading
from typing import Any

from .persistence.interfaces import BlobStore
from .settings import Settings, get_settings
from .store import DefaultsStore

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "simple_defaults"

_LOCK = threading.Lock()
_SHARED: DefaultsStore | None = None
_ATEXIT_REGISTERED = False
_DEBUG_HANDLER: logging.Handler | None = None


def enable_debug_logging(enabled: bool) -> None:
    """Single gate for the package's debug chatter."""
    global _DEBUG_HANDLER
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if enabled:
        pkg_logger.setLevel(logging.DEBUG)
        if _DEBUG_HANDLER is None:
            _DEBUG_HANDLER = logging.StreamHandler()
            _DEBUG_HANDLER.setFormatter(logging.Formatter("[%(levelname)s] SimpleDefaults: %(message)s"))
            pkg_logger.addHandler(_DEBUG_HANDLER)
    else:
        pkg_logger.setLevel(logging.NOTSET)
        if _DEBUG_HANDLER is not None:
            pkg_logger.removeHandler(_DEBUG_HANDLER)
            _DEBUG_HANDLER = None


def _create(backing: BlobStore | None, settings: Settings | None, **overrides: Any) -> DefaultsStore:
    global _ATEXIT_REGISTERED
    settings = settings if settings is not None else get_settings()
    if settings.debug:
        enable_debug_logging(True)
    store = DefaultsStore.from_settings(settings, backing, **overrides)
    if not _ATEXIT_REGISTERED:
        atexit.register(teardown_shared_defaults)
        _ATEXIT_REGISTERED = True
    return store


def init_shared_defaults(
    backing: BlobStore | None = None,
    *,
    settings: Settings | None = None,
    **overrides: Any,
) -> DefaultsStore:
    global _SHARED
    with _LOCK:
        if _SHARED is not None:
            raise RuntimeError("shared defaults already initialized; call teardown_shared_defaults() first")
        _SHARED = _create(backing, settings, **overrides)
        return _SHARED


def shared_defaults() -> DefaultsStore:
    global _SHARED
    with _LOCK:
        if _SHARED is None:
            logger.debug("INIT: creating shared defaults on first access")
            _SHARED = _create(None, None)
        return _SHARED


def teardown_shared_defaults(final_flush: bool | None = None) -> None:
    global _SHARED
    with _LOCK:
        store, _SHARED = _SHARED, None
    if store is not None:
        store.close(final_flush=final_flush)

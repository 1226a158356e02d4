from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from .gateway import SyncGateway, SyncPredicate
from .namespace import Namespace, NamespaceStore
from .persistence.disk_store import DiskJsonBlobStore
from .persistence.interfaces import BlobStore
from .persistence.memory_store import InMemoryBlobStore
from .scheduler import FlushScheduler
from .settings import DEFAULT_ROOT_KEY, DEFAULT_SYNC_INTERVAL, Settings

logger = logging.getLogger(__name__)

SaveErrorCallback = Callable[[Namespace, Exception], None]


class DefaultsStore:
    """
    Two-namespace (device / user) defaults cache with debounced persistence.

    Reads and writes only touch the in-memory namespaces. A background
    scheduler hands every dirty namespace to the backing store each
    `synchronize_interval` seconds; synchronize_*_defaults() does the same
    immediately for one namespace and additionally asks the backing store
    for a durable sync.
    """

    def __init__(
        self,
        backing: BlobStore | None = None,
        *,
        root_key: str = DEFAULT_ROOT_KEY,
        synchronize_interval: float = DEFAULT_SYNC_INTERVAL,
        needs_durable_sync: SyncPredicate = True,
        flush_on_close: bool = True,
        on_save_error: SaveErrorCallback | None = None,
        start: bool = True,
    ):
        self._backing = backing if backing is not None else InMemoryBlobStore()
        self._root_key = root_key
        self._namespaces = {ns: NamespaceStore(ns, self._rejection_reporter(ns)) for ns in Namespace}
        # Held across save() so at most one flush per namespace is in flight.
        self._flush_locks = {ns: threading.Lock() for ns in Namespace}
        self._gateway = SyncGateway(self._backing, needs_durable_sync)
        self._flush_on_close = flush_on_close
        self._on_save_error = on_save_error
        self._close_lock = threading.Lock()
        self._closed = False

        logger.debug("INIT: initializing defaults under root %r", root_key)
        self._load_all()

        self._scheduler = FlushScheduler(self._flush_all, synchronize_interval)
        if start:
            self._scheduler.start()

    @classmethod
    def from_settings(cls, settings: Settings, backing: BlobStore | None = None, **kwargs: Any) -> "DefaultsStore":
        if backing is None:
            backing = DiskJsonBlobStore(settings.data_dir)
        kwargs.setdefault("root_key", settings.root_key)
        kwargs.setdefault("synchronize_interval", settings.synchronize_interval)
        kwargs.setdefault("needs_durable_sync", settings.force_durable_sync)
        kwargs.setdefault("flush_on_close", settings.flush_on_teardown)
        return cls(backing, **kwargs)

    # -------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------
    @property
    def backing(self) -> BlobStore:
        return self._backing

    @property
    def root_key(self) -> str:
        return self._root_key

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def scheduler(self) -> FlushScheduler:
        return self._scheduler

    def storage_key(self, namespace: Namespace) -> str:
        return namespace.storage_key(self._root_key)

    def is_dirty(self, namespace: Namespace) -> bool:
        return self._namespaces[namespace].dirty

    # -------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------
    @property
    def synchronize_interval(self) -> float:
        """How often (seconds) dirty namespaces are handed to the backing store."""
        return self._scheduler.interval

    @synchronize_interval.setter
    def synchronize_interval(self, seconds: float) -> None:
        self._scheduler.interval = seconds

    def flush_pending(self) -> None:
        """Run one scheduler tick now: save every dirty namespace, no durable sync."""
        self._scheduler.run_now()

    # -------------------------------------------------------------------
    # User defaults
    # -------------------------------------------------------------------
    def get_user_default(self, key: str, fallback: Any = None, expected: Any = None) -> Any:
        logger.debug("GET: user default for key %r", key)
        return self._namespaces[Namespace.USER].get(key, fallback, expected)

    def set_user_default(self, key: str, value: Any) -> None:
        logger.debug("SET: user default %r for key %r", value, key)
        self._warn_if_closed(Namespace.USER, key)
        self._namespaces[Namespace.USER].set(key, value)

    def reset_user_defaults(self) -> None:
        logger.debug("RESET: user defaults")
        self._warn_if_closed(Namespace.USER, None)
        self._namespaces[Namespace.USER].reset()

    def synchronize_user_defaults(self) -> None:
        self._synchronize(Namespace.USER)

    # -------------------------------------------------------------------
    # Device defaults
    # -------------------------------------------------------------------
    def get_device_default(self, key: str, fallback: Any = None, expected: Any = None) -> Any:
        logger.debug("GET: device default for key %r", key)
        return self._namespaces[Namespace.DEVICE].get(key, fallback, expected)

    def set_device_default(self, key: str, value: Any) -> None:
        logger.debug("SET: device default %r for key %r", value, key)
        self._warn_if_closed(Namespace.DEVICE, key)
        self._namespaces[Namespace.DEVICE].set(key, value)

    def synchronize_device_defaults(self) -> None:
        self._synchronize(Namespace.DEVICE)

    # -------------------------------------------------------------------
    # Loading / saving
    # -------------------------------------------------------------------
    def _load_all(self) -> None:
        for namespace in Namespace:
            self._load(namespace)

    def _load(self, namespace: Namespace) -> None:
        key = self.storage_key(namespace)
        try:
            blob = self._backing.load(key)
        except Exception as e:
            logger.warning("LOAD: failed to read %s, starting empty: %r", key, e)
            return
        if blob is None:
            logger.debug("LOAD: no cached %s defaults", namespace.value.lower())
            return
        if self._namespaces[namespace].load(blob):
            logger.debug("LOAD: %s defaults found with %d keys", namespace.value.lower(), len(self._namespaces[namespace]))

    def _flush(self, namespace: Namespace) -> bool:
        """Save the namespace if dirty. Returns True when a save actually happened."""
        store = self._namespaces[namespace]
        with self._flush_locks[namespace]:
            snapshot = store.take_snapshot()
            if snapshot is None:
                return False
            key = self.storage_key(namespace)
            logger.debug("FLUSH: saving %s defaults (%d keys)", namespace.value.lower(), len(snapshot))
            try:
                self._backing.save(key, snapshot)
            except Exception as e:
                # Keep the data pending so the next tick retries.
                store.mark_dirty()
                logger.warning("FLUSH: failed to save %s: %r", key, e)
                self._report_save_error(namespace, e)
                return False
            return True

    def _flush_all(self) -> None:
        logger.debug("FLUSH: synchronize timer fired")
        for namespace in Namespace:
            self._flush(namespace)

    def _synchronize(self, namespace: Namespace) -> None:
        self._flush(namespace)
        self._gateway.synchronize()

    def _rejection_reporter(self, namespace: Namespace) -> Callable[[str, Exception], None]:
        def report(key: str, error: Exception) -> None:
            self._report_save_error(namespace, error)

        return report

    def _warn_if_closed(self, namespace: Namespace, key: str | None) -> None:
        if self._closed:
            target = "reset" if key is None else f"key {key!r}"
            logger.warning("SET: store is closed, %s %s will not be persisted", namespace.value.lower(), target)

    def _report_save_error(self, namespace: Namespace, error: Exception) -> None:
        if self._on_save_error is None:
            return
        try:
            self._on_save_error(namespace, error)
        except Exception as cb_error:
            logger.error("on_save_error callback error: %r", cb_error)

    # -------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------
    def close(self, final_flush: bool | None = None) -> None:
        """
        Stop the scheduler. With final_flush (default: the flush_on_close
        setting) both namespaces are flushed and a durable sync is requested,
        so writes from the last interval are not lost. Safe to call twice.

        Reads and writes keep working on the in-memory namespaces afterwards,
        but nothing persists them any more; each such write logs a warning.
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self._scheduler.stop()
        if final_flush is None:
            final_flush = self._flush_on_close
        if final_flush:
            saved = [self._flush(namespace) for namespace in Namespace]
            self._gateway.synchronize()
            logger.debug("CLOSE: final flush saved %d namespace(s)", sum(saved))
        else:
            logger.debug("CLOSE: scheduler stopped without final flush")

    def __enter__(self) -> "DefaultsStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

from __future__ import annotations

import time
from pathlib import Path
import sys
from typing import Callable, Iterator

import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from simple_defaults import DefaultsStore, InMemoryBlobStore  # noqa: E402
from simple_defaults import shared  # noqa: E402

_ENV_VARS = (
    "DEFAULTS_ROOT_KEY",
    "DEFAULTS_SYNC_INTERVAL",
    "DEFAULTS_DATA_DIR",
    "DEFAULTS_FORCE_DURABLE_SYNC",
    "DEFAULTS_FLUSH_ON_TEARDOWN",
    "DEFAULTS_DEBUG",
)


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0, step: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(step)
    return predicate()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """
    Strip DEFAULTS_* variables and run from an empty temp dir so no local.env leaks in.
    """
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def backing() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def store(backing: InMemoryBlobStore) -> Iterator[DefaultsStore]:
    """A store whose scheduler is not started; tests drive flushes by hand."""
    s = DefaultsStore(backing, start=False, flush_on_close=False)
    yield s
    s.close()


@pytest.fixture
def reset_shared() -> Iterator[None]:
    shared.teardown_shared_defaults(final_flush=False)
    yield
    shared.teardown_shared_defaults(final_flush=False)
    shared.enable_debug_logging(False)

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .persistence.paths import default_data_dir

DEFAULT_ROOT_KEY = "SimpleDefaults"
DEFAULT_SYNC_INTERVAL = 5.0


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    # Storage keys are "<root_key>.Device" and "<root_key>.User"
    root_key: str

    # Debounce interval for background flushes (seconds)
    synchronize_interval: float

    # Disk backend location
    data_dir: Path

    # Whether the backing store needs an explicit durable sync on forced synchronize
    force_durable_sync: bool

    # Final forced flush of both namespaces on teardown
    flush_on_teardown: bool

    # Single logging gate
    debug: bool


def get_settings(env_file: str | os.PathLike[str] | None = "local.env") -> Settings:
    if env_file is not None:
        load_dotenv(env_file)

    root_key = os.getenv("DEFAULTS_ROOT_KEY", DEFAULT_ROOT_KEY).strip() or DEFAULT_ROOT_KEY

    synchronize_interval = _env_float("DEFAULTS_SYNC_INTERVAL", DEFAULT_SYNC_INTERVAL)
    if synchronize_interval <= 0:
        raise ValueError(f"DEFAULTS_SYNC_INTERVAL must be positive, got {synchronize_interval!r}")

    raw_dir = os.getenv("DEFAULTS_DATA_DIR", "").strip()
    data_dir = Path(raw_dir).expanduser() if raw_dir else default_data_dir()

    # Our disk backend does not fsync on its own, so the default is on.
    force_durable_sync = _env_bool("DEFAULTS_FORCE_DURABLE_SYNC", True)
    flush_on_teardown = _env_bool("DEFAULTS_FLUSH_ON_TEARDOWN", True)
    debug = _env_bool("DEFAULTS_DEBUG", False)

    return Settings(
        root_key=root_key,
        synchronize_interval=synchronize_interval,
        data_dir=data_dir,
        force_durable_sync=force_durable_sync,
        flush_on_teardown=flush_on_teardown,
        debug=debug,
    )

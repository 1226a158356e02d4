from __future__ import annotations

import re
from pathlib import Path

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def default_data_dir() -> Path:
    return Path.cwd() / "data" / "defaults"


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def blob_path(directory: Path, storage_key: str) -> Path:
    # "SimpleDefaults.User" -> <dir>/SimpleDefaults.User.json
    name = _UNSAFE_CHARS.sub("_", storage_key.strip()) or "_"
    return directory / f"{name}.json"

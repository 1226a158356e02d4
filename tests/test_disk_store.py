from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pytest

import simple_defaults.persistence.disk_store as disk_store_module
from simple_defaults import DefaultsStore, DiskJsonBlobStore
from simple_defaults.persistence.json_store import atomic_write_json, read_json
from simple_defaults.persistence.locks import DocumentLockRegistry
from simple_defaults.persistence.paths import blob_path
from simple_defaults.values import UnstorableValueError


def test_blob_path_is_sanitized(tmp_path: Path):
    assert blob_path(tmp_path, "SimpleDefaults.User") == tmp_path / "SimpleDefaults.User.json"
    assert blob_path(tmp_path, "../evil/key") == tmp_path / ".._evil_key.json"


def test_read_json_tolerates_missing_empty_and_invalid(tmp_path: Path):
    assert read_json(tmp_path / "nope.json") is None
    empty = tmp_path / "empty.json"
    empty.write_text("  \n", encoding="utf-8")
    assert read_json(empty) is None
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    assert read_json(bad) is None


def test_unserializable_payload_leaves_previous_document(tmp_path: Path):
    path = tmp_path / "doc.json"
    atomic_write_json(path, {"a": 1})
    try:
        atomic_write_json(path, {"a": object()})
    except TypeError:
        pass
    assert read_json(path) == {"a": 1}
    assert not (tmp_path / "doc.json.tmp").exists()


def test_path_locks_are_stable_per_path(tmp_path: Path):
    registry = DocumentLockRegistry()
    a = registry.lock_for(tmp_path / "x.json")
    b = registry.lock_for(tmp_path / "." / "x.json")
    c = registry.lock_for(tmp_path / "y.json")
    assert a is b
    assert a is not c
    assert len(registry) == 2

    with registry.hold(tmp_path / "x.json"):
        assert a.locked()
    assert not a.locked()


def test_disk_store_save_load_and_sync(tmp_path: Path):
    blobs = DiskJsonBlobStore(tmp_path / "defaults")
    assert blobs.load("SimpleDefaults.User") is None

    blobs.save("SimpleDefaults.User", {"a": 1, "b": [True, None]})
    on_disk = json.loads((tmp_path / "defaults" / "SimpleDefaults.User.json").read_text(encoding="utf-8"))
    assert on_disk == {"a": 1, "b": [True, None]}
    assert blobs.load("SimpleDefaults.User") == {"a": 1, "b": [True, None]}

    blobs.request_durable_sync()
    blobs.request_durable_sync()


def test_non_mapping_document_loads_as_none(tmp_path: Path):
    blobs = DiskJsonBlobStore(tmp_path)
    blobs.path_for("K").write_text("[1, 2, 3]", encoding="utf-8")
    assert blobs.load("K") is None


def test_store_persists_to_disk_across_instances(tmp_path: Path):
    directory = tmp_path / "defaults"
    with DefaultsStore(DiskJsonBlobStore(directory), start=False) as s:
        s.set_user_default("greeting", "hi")
        s.set_device_default("launches", 3)
        s.synchronize_user_defaults()
        assert (directory / "SimpleDefaults.User.json").exists()

    with DefaultsStore(DiskJsonBlobStore(directory), start=False, flush_on_close=False) as s2:
        assert s2.get_user_default("greeting", "") == "hi"
        assert s2.get_device_default("launches", 0) == 3


def test_value_without_json_form_never_blocks_other_keys(tmp_path: Path):
    errors = []
    with DefaultsStore(
        DiskJsonBlobStore(tmp_path),
        start=False,
        flush_on_close=False,
        on_save_error=lambda ns, e: errors.append(type(e)),
    ) as s:
        s.set_user_default("theme", "dark")
        s.set_user_default("obj", object())
        s.flush_pending()
        assert errors == [UnstorableValueError]
        s.set_user_default("volume", 7)
        s.synchronize_user_defaults()
    assert read_json(tmp_path / "SimpleDefaults.User.json") == {"theme": "dark", "volume": 7}


def test_datetime_values_persist_with_their_neighbours(tmp_path: Path):
    with DefaultsStore(DiskJsonBlobStore(tmp_path), start=False, flush_on_close=False) as s:
        s.set_user_default("theme", "dark")
        s.set_user_default("last_seen", datetime(2024, 1, 1))
        for _ in range(3):
            s.flush_pending()
        s.set_user_default("volume", 7)
        s.synchronize_user_defaults()
    assert read_json(tmp_path / "SimpleDefaults.User.json") == {
        "theme": "dark",
        "last_seen": "2024-01-01T00:00:00",
        "volume": 7,
    }


def test_tuples_and_datetimes_keep_their_type_across_a_restart(tmp_path: Path):
    with DefaultsStore(DiskJsonBlobStore(tmp_path), start=False) as s:
        s.set_user_default("size", (640, 480))
        s.set_user_default("last_seen", datetime(2024, 1, 1))
        assert s.get_user_default("size", (0, 0)) == (640, 480)

    with DefaultsStore(DiskJsonBlobStore(tmp_path), start=False, flush_on_close=False) as s2:
        assert s2.get_user_default("size", (0, 0)) == (640, 480)
        assert s2.get_user_default("last_seen", None, expected=datetime) == datetime(2024, 1, 1)
        assert s2.get_user_default("size", None) == [640, 480]


def test_failed_fsync_is_retried_on_next_sync(tmp_path: Path, monkeypatch):
    blobs = DiskJsonBlobStore(tmp_path)
    blobs.save("K", {"a": 1})
    synced = []
    failures = [OSError("fsync failed")]

    def flaky_fsync(path):
        if failures:
            raise failures.pop()
        synced.append(Path(path))

    monkeypatch.setattr(disk_store_module, "fsync_path", flaky_fsync)
    with pytest.raises(OSError):
        blobs.request_durable_sync()
    blobs.request_durable_sync()
    assert blobs.path_for("K") in synced

    synced.clear()
    blobs.request_durable_sync()
    assert synced == []

import json
import threading
import time

import pytest

from abcinvoice.errors import RemoteStoreError
from abcinvoice.storage.json_store import JsonStore
from abcinvoice.storage.remote import RemoteStore


@pytest.fixture
def store(tmp_path):
    return JsonStore(tmp_path, backup_keep=2)


def test_implements_remote_store(store):
    assert isinstance(store, RemoteStore)


def test_crud_cycle(store):
    assert store.select("clients") == []
    store.insert("clients", {"id": "a", "name": "A"})
    store.insert("clients", {"id": "b", "name": "B"})
    merged = store.update("clients", "a", {"name": "A2"})
    assert merged == {"id": "a", "name": "A2"}
    assert store.delete("clients", "b") is True
    assert store.delete("clients", "b") is False
    assert store.select("clients") == [{"id": "a", "name": "A2"}]
    on_disk = json.loads(store.path_for("clients").read_text(encoding="utf-8"))
    assert on_disk == [{"id": "a", "name": "A2"}]


def test_duplicate_insert_and_missing_update_fail(store):
    store.insert("companies", {"id": "x", "name": "X"})
    with pytest.raises(RemoteStoreError):
        store.insert("companies", {"id": "x", "name": "Y"})
    with pytest.raises(RemoteStoreError):
        store.update("companies", "nope", {"name": "Z"})


def test_corrupt_file_is_set_aside(store):
    path = store.path_for("clients")
    path.write_text("{not json", encoding="utf-8")
    assert store.select("clients") == []
    assert path.with_suffix(".corrupt.json").exists()


def test_backups_are_rotated(store, tmp_path):
    store.insert("clients", {"id": "1", "name": "A"})
    for i in range(5):
        store.update("clients", "1", {"name": f"A{i}"})
    backups = list(tmp_path.glob("clients.*.bak.json"))
    assert 0 < len(backups) <= 2


def test_unchanged_content_is_not_rewritten(store, tmp_path):
    store.insert("clients", {"id": "1", "name": "A"})
    store.update("clients", "1", {"name": "A"})
    assert list(tmp_path.glob("clients.*.bak.json")) == []


def test_concurrent_writes_are_not_lost(store, monkeypatch):
    store.insert("companies", {"id": "a", "name": "A"})
    read = store._read_raw

    def slow_read(table):
        data = read(table)
        time.sleep(0.05)
        return data

    monkeypatch.setattr(store, "_read_raw", slow_read)
    threads = [
        threading.Thread(target=store.insert, args=("companies", {"id": "b", "name": "B"})),
        threading.Thread(target=store.delete, args=("companies", "a")),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert store.select("companies") == [{"id": "b", "name": "B"}]

import pytest

from abcinvoice.errors import RemoteStoreError
from abcinvoice.storage.memory_store import MemoryStore
from abcinvoice.storage.remote import RemoteStore


def test_returns_copies():
    store = MemoryStore()
    row = store.insert("clients", {"id": "1", "name": "A"})
    row["name"] = "changed"
    store.select("clients")[0]["name"] = "changed too"
    assert store.select("clients") == [{"id": "1", "name": "A"}]


def test_failures_are_simulated_per_operation():
    store = MemoryStore()
    assert isinstance(store, RemoteStore)
    store.fail_on.add("insert")
    with pytest.raises(RemoteStoreError) as exc:
        store.insert("companies", {"id": "1"})
    assert exc.value.table == "companies"
    assert store.calls == [("insert", "companies")]

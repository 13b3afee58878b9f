import threading

import pytest

from rsq_storage.errors import ResourceNotFoundError, StorageError
from rsq_storage.memory import MemoryAdapter


def test_store_and_retrieve_round_trip():
    adapter = MemoryAdapter()
    adapter.store("key", b"hello")
    assert adapter.retrieve("key") == b"hello"


def test_retrieve_missing_raises():
    adapter = MemoryAdapter()
    with pytest.raises(ResourceNotFoundError) as info:
        adapter.retrieve("absent")
    assert info.value.resource == "absent"


def test_missing_is_storage_error():
    adapter = MemoryAdapter()
    with pytest.raises(StorageError):
        adapter.retrieve("absent")


def test_exists_and_delete():
    adapter = MemoryAdapter()
    assert adapter.exists("k") is False
    adapter.store("k", b"v")
    assert adapter.exists("k") is True
    adapter.delete("k")
    assert adapter.exists("k") is False


def test_delete_missing_key_is_harmless():
    adapter = MemoryAdapter()
    adapter.store("other", b"v")
    adapter.delete("absent")
    assert adapter.retrieve("other") == b"v"


def test_store_overwrites():
    adapter = MemoryAdapter()
    adapter.store("k", b"first")
    adapter.store("k", b"second")
    assert adapter.retrieve("k") == b"second"


def test_stored_data_is_a_copy():
    adapter = MemoryAdapter()
    buffer = bytearray(b"abc")
    adapter.store("k", buffer)
    buffer[0] = ord("z")
    assert adapter.retrieve("k") == b"abc"


def test_adapters_are_independent():
    first = MemoryAdapter()
    second = MemoryAdapter()
    first.store("k", b"v")
    assert second.exists("k") is False


def test_concurrent_stores():
    adapter = MemoryAdapter()

    def worker(n):
        for i in range(50):
            adapter.store(f"{n}-{i}", bytes([i]))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert all(adapter.retrieve(f"{n}-{i}") == bytes([i]) for n in range(4) for i in range(50))
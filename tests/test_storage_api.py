import asyncio
from unittest import mock

import pytest

from rsq_storage.errors import OperationFailedError, ResourceNotFoundError
from rsq_storage.storage_api import (
    BatchOperation,
    BatchOperationType,
    BatchResult,
    StorageApi,
    StorageBackend,
    StorageConfig,
    StorageManager,
    StorageMetadata,
    extract_filename,
    extract_prefix,
    generate_key,
    normalize_key,
    validate_key,
    with_retry,
)


class DictStorage(StorageApi):
    def __init__(self):
        self.config = StorageConfig()
        self.items = {}

    def put(self, key, data):
        validate_key(key)
        self.items[key] = bytes(data)

    def put_with_metadata(self, key, data, metadata):
        self.put(key, data)

    def get(self, key):
        try:
            return self.items[key]
        except KeyError:
            raise ResourceNotFoundError(key) from None

    def get_with_metadata(self, key):
        data = self.get(key)
        return data, StorageMetadata(content_length=len(data))

    def delete(self, key):
        if key not in self.items:
            raise ResourceNotFoundError(key)
        del self.items[key]

    def exists(self, key):
        return key in self.items

    def list(self, prefix):
        return sorted(k for k in self.items if k.startswith(prefix))

    def head(self, key):
        return self.get_with_metadata(key)[1]

    def copy(self, source, destination):
        self.put(destination, self.get(source))

    def backend_type(self):
        return StorageBackend.LOCAL


def test_storage_config_default():
    config = StorageConfig()
    assert config.timeout == 30
    assert config.max_retries == 3
    assert config.compression is False
    assert config.encryption is False
    assert config.backend_config == {}


def test_validate_key():
    validate_key("valid/key")
    for bad in ["", "key\0with\0nulls", "key\nwith\nnewlines", "key\rwith"]:
        with pytest.raises(OperationFailedError) as info:
            validate_key(bad)
        assert info.value.operation == "validate_key"


def test_validate_key_length_limit():
    validate_key("a" * 1024)
    with pytest.raises(OperationFailedError) as info:
        validate_key("a" * 1025)
    assert info.value.reason == "Key too long (max 1024 characters)"


def test_validate_empty_key_reason():
    with pytest.raises(OperationFailedError) as info:
        validate_key("")
    assert info.value.reason == "Key cannot be empty"


def test_generate_key():
    key = generate_key("prefix", "txt")
    assert key.startswith("prefix/")
    assert key.endswith(".txt")


def test_generate_key_without_suffix_is_unique():
    first = generate_key("prefix")
    second = generate_key("prefix")
    assert first.startswith("prefix/")
    assert "." not in first
    assert first != second


def test_extract_prefix():
    assert extract_prefix("prefix/file.txt") == "prefix"
    assert extract_prefix("file.txt") is None


def test_extract_filename():
    assert extract_filename("prefix/file.txt") == "file.txt"
    assert extract_filename("file.txt") == "file.txt"


def test_normalize_key():
    assert normalize_key("/prefix//file.txt") == "prefix/file.txt"
    assert normalize_key("prefix/file.txt") == "prefix/file.txt"


def test_storage_manager():
    manager = StorageManager(StorageBackend.LOCAL)
    assert manager.default_backend is StorageBackend.LOCAL
    config = StorageConfig()
    manager.set_config(StorageBackend.S3, config)
    assert manager.get_config(StorageBackend.S3) is config
    assert manager.get_config(StorageBackend.IPFS) is None
    manager.default_backend = StorageBackend.IPFS
    assert manager.default_backend is StorageBackend.IPFS


def test_batch_operations():
    storage = DictStorage()
    results = storage.batch([
        BatchOperation(BatchOperationType.PUT, "test1.txt", b"data1"),
        BatchOperation(BatchOperationType.PUT, "test2.txt", b"data2"),
        BatchOperation(BatchOperationType.GET, "test1.txt"),
    ])
    assert len(results) == 3
    assert all(r.ok for r in results)
    assert results[2].value == b"data1"
    assert [r.key for r in results] == ["test1.txt", "test2.txt", "test1.txt"]


def test_batch_exists_delete_and_errors():
    storage = DictStorage()
    storage.put("a", b"x")
    results = storage.batch([
        BatchOperation(BatchOperationType.EXISTS, "a"),
        BatchOperation(BatchOperationType.DELETE, "a"),
        BatchOperation(BatchOperationType.EXISTS, "a"),
        BatchOperation(BatchOperationType.GET, "a"),
        BatchOperation(BatchOperationType.PUT, "b"),
    ])
    assert results[0].value == b"true"
    assert results[1].ok and results[1].value is None
    assert results[2].value == b"false"
    assert isinstance(results[3].error, ResourceNotFoundError)
    assert results[4].error.operation == "batch_put"
    assert results[4].error.reason == "No data provided for put operation"


def test_batch_result_unwrap():
    assert BatchResult(key="k", value=b"v").unwrap() == b"v"
    with pytest.raises(ResourceNotFoundError):
        BatchResult(key="k", error=ResourceNotFoundError("k")).unwrap()


@pytest.mark.asyncio
async def test_with_retry_returns_first_success():
    calls = []

    async def operation():
        calls.append(1)
        return "done"

    assert await with_retry(operation, 3, 1.0) == "done"
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_with_retry_retries_with_backoff():
    attempts = []

    async def operation():
        attempts.append(1)
        if len(attempts) < 3:
            raise OperationFailedError("op", "transient")
        return 42

    with mock.patch("rsq_storage.storage_api.asyncio.sleep", new=mock.AsyncMock()) as sleep:
        result = await with_retry(operation, 3, 1.0)
    assert result == 42
    assert len(attempts) == 3
    assert [c.args[0] for c in sleep.await_args_list] == pytest.approx([0.1, 0.2])


@pytest.mark.asyncio
async def test_with_retry_raises_last_error():
    attempts = []

    async def operation():
        attempts.append(1)
        raise OperationFailedError("op", f"failure {len(attempts)}")

    with mock.patch("rsq_storage.storage_api.asyncio.sleep", new=mock.AsyncMock()):
        with pytest.raises(OperationFailedError) as info:
            await with_retry(operation, 2, 1.0)
    assert len(attempts) == 3
    assert info.value.reason == "failure 3"


@pytest.mark.asyncio
async def test_with_retry_timeout():
    async def operation():
        await asyncio.Event().wait()

    with pytest.raises(OperationFailedError) as info:
        await with_retry(operation, 0, 0.01)
    assert info.value.operation == "retry_operation"
    assert info.value.reason == "Operation timed out"
import pytest

from rsq_storage.errors import BackendNotAvailableError, OperationFailedError
from rsq_storage.factory import create_local, storage_from_url
from rsq_storage.local import LocalStorage
from rsq_storage.local_fs import LocalConfig
from rsq_storage.storage_api import StorageBackend, StorageConfig


def test_create_local(tmp_path):
    base = tmp_path / "store"
    storage = create_local(LocalConfig(base_path=base), StorageConfig())
    assert isinstance(storage, LocalStorage)
    assert storage.backend_type() is StorageBackend.LOCAL
    assert base.is_dir()


def test_create_local_keeps_storage_config(tmp_path):
    config = StorageConfig(max_retries=7)
    storage = create_local(LocalConfig(base_path=tmp_path), config)
    assert storage.config.max_retries == 7


def test_from_url_file_scheme(tmp_path):
    storage = storage_from_url(f"file://{tmp_path}")
    assert storage.backend_type() is StorageBackend.LOCAL
    storage.put("hello.txt", b"Hello, World!")
    assert (tmp_path / "hello.txt").read_bytes() == b"Hello, World!"


def test_from_url_relative_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    storage = storage_from_url("./relative_store")
    assert storage.backend_type() is StorageBackend.LOCAL
    storage.put("a.txt", b"data")
    assert storage.get("a.txt") == b"data"
    assert storage.exists("a.txt") is True
    assert (tmp_path / "relative_store" / "a.txt").read_bytes() == b"data"


def test_from_url_s3_not_available():
    with pytest.raises(BackendNotAvailableError) as info:
        storage_from_url("s3://bucket/path")
    assert info.value.backend == "S3"


def test_from_url_unsupported():
    with pytest.raises(OperationFailedError) as info:
        storage_from_url("ftp://example.com/data")
    assert info.value.operation == "parse_storage_url"
    assert "ftp://example.com/data" in info.value.reason
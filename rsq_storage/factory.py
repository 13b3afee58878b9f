"""Construction of storage backends from configurations or URLs."""

from __future__ import annotations

from pathlib import Path

from rsq_storage.errors import BackendNotAvailableError, OperationFailedError
from rsq_storage.ipfs import IpfsConfig, IpfsStorage
from rsq_storage.local import LocalStorage
from rsq_storage.local_fs import LocalConfig
from rsq_storage.storage_api import StorageApi, StorageConfig


def create_local(
    local_config: LocalConfig | None = None,
    storage_config: StorageConfig | None = None,
) -> LocalStorage:
    """Create a local filesystem storage backend."""
    return LocalStorage(local_config, storage_config)


def storage_from_url(url: str) -> StorageApi:
    """Create a storage backend from a URL.

    ``file://`` URLs and paths starting with ``./`` or ``/`` give local
    storage, ``ipfs://`` connects to an IPFS node with default settings.
    ``s3://`` is recognised but no S3 backend is available.
    """
    storage_config = StorageConfig()

    if url.startswith(("file://", "./", "/")):
        path = url.removeprefix("file://")
        return LocalStorage(LocalConfig(base_path=Path(path)), storage_config)
    if url.startswith("s3://"):
        raise BackendNotAvailableError("S3")
    if url.startswith("ipfs://"):
        return IpfsStorage(IpfsConfig(), storage_config)
    raise OperationFailedError("parse_storage_url", f"Unsupported storage URL: {url}")
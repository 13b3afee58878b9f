"""Storage wrappers adding behaviour on top of another backend."""

from __future__ import annotations

import threading

from rsq_storage.storage_api import (
    BatchOperation,
    BatchResult,
    StorageApi,
    StorageBackend,
    StorageConfig,
    StorageMetadata,
)


class CachingStorage(StorageApi):
    """Keeps recently written or read objects in memory in front of a backend.

    When the cache is full the oldest entry is dropped before a new one is
    added. Metadata is never cached, and batch operations bypass the cache.
    """

    def __init__(self, inner: StorageApi, max_cache_size: int) -> None:
        self.inner = inner
        self.max_cache_size = max_cache_size
        self._cache: dict[str, bytes] = {}
        self._lock = threading.Lock()

    @property
    def config(self) -> StorageConfig:
        return self.inner.config

    def _cached(self, key: str) -> bytes | None:
        with self._lock:
            return self._cache.get(key)

    def _remember(self, key: str, data: bytes) -> None:
        with self._lock:
            if len(self._cache) >= self.max_cache_size and self._cache:
                oldest = next(iter(self._cache))
                del self._cache[oldest]
            self._cache[key] = data

    def _forget(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def put(self, key: str, data: bytes) -> None:
        data = bytes(data)
        self.inner.put(key, data)
        self._remember(key, data)

    def put_with_metadata(self, key: str, data: bytes, metadata: StorageMetadata) -> None:
        data = bytes(data)
        self.inner.put_with_metadata(key, data, metadata)
        self._remember(key, data)

    def get(self, key: str) -> bytes:
        cached = self._cached(key)
        if cached is not None:
            return cached
        data = self.inner.get(key)
        self._remember(key, data)
        return data

    def get_with_metadata(self, key: str) -> tuple[bytes, StorageMetadata]:
        return self.inner.get_with_metadata(key)

    def delete(self, key: str) -> None:
        self.inner.delete(key)
        self._forget(key)

    def exists(self, key: str) -> bool:
        if self._cached(key) is not None:
            return True
        return self.inner.exists(key)

    def list(self, prefix: str) -> list[str]:
        return self.inner.list(prefix)

    def head(self, key: str) -> StorageMetadata:
        return self.inner.head(key)

    def copy(self, source: str, destination: str) -> None:
        self.inner.copy(source, destination)
        cached = self._cached(source)
        if cached is not None:
            self._remember(destination, cached)

    def batch(self, operations: list[BatchOperation]) -> list[BatchResult]:
        return self.inner.batch(operations)

    def backend_type(self) -> StorageBackend:
        return self.inner.backend_type()
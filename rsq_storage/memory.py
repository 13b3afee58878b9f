"""Simple key/value storage adapters."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod

from rsq_storage.errors import ResourceNotFoundError


class StorageAdapter(ABC):
    """Minimal key/value storage interface."""

    @abstractmethod
    def store(self, key: str, data: bytes) -> None:
        """Store ``data`` under ``key``."""

    @abstractmethod
    def retrieve(self, key: str) -> bytes:
        """Return the data stored under ``key``."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Tell whether ``key`` is present."""


class MemoryAdapter(StorageAdapter):
    """Thread-safe in-memory storage adapter."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def store(self, key: str, data: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(data)

    def retrieve(self, key: str) -> bytes:
        with self._lock:
            try:
                return self._data[key]
            except KeyError:
                raise ResourceNotFoundError(key) from None

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._data
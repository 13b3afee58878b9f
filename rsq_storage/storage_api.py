"""Common storage types, the backend interface and key helpers."""

from __future__ import annotations

import asyncio
import enum
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, TypeVar

from rsq_storage.errors import OperationFailedError, StorageError

T = TypeVar("T")

MAX_KEY_LENGTH = 1024


@dataclass
class StorageConfig:
    """Settings shared by all storage backends."""

    timeout: float = 30.0
    max_retries: int = 3
    compression: bool = False
    encryption: bool = False
    backend_config: dict[str, str] = field(default_factory=dict)


@dataclass
class StorageMetadata:
    """Metadata describing a stored object."""

    content_length: int
    content_type: str | None = None
    last_modified: datetime | None = None
    etag: str | None = None
    custom: dict[str, str] = field(default_factory=dict)


class StorageBackend(enum.Enum):
    """Kinds of storage backend."""

    LOCAL = "local"
    S3 = "s3"
    IPFS = "ipfs"


class BatchOperationType(enum.Enum):
    """Operations that can appear in a batch."""

    PUT = "put"
    GET = "get"
    DELETE = "delete"
    EXISTS = "exists"


@dataclass
class BatchOperation:
    """One operation in a batch request."""

    operation: BatchOperationType
    key: str
    data: bytes | None = None


@dataclass
class BatchResult:
    """Outcome of one batch operation: a value or the error it raised."""

    key: str
    value: bytes | None = None
    error: StorageError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> bytes | None:
        """Return the value, or raise the error the operation failed with."""
        if self.error is not None:
            raise self.error
        return self.value


class StorageApi(ABC):
    """Interface every storage backend implements."""

    config: StorageConfig

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        """Store ``data`` under ``key``."""

    @abstractmethod
    def put_with_metadata(self, key: str, data: bytes, metadata: StorageMetadata) -> None:
        """Store ``data`` under ``key`` together with ``metadata``."""

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Return the data stored under ``key``."""

    @abstractmethod
    def get_with_metadata(self, key: str) -> tuple[bytes, StorageMetadata]:
        """Return the data and metadata stored under ``key``."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the object stored under ``key``."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Tell whether ``key`` is present."""

    @abstractmethod
    def list(self, prefix: str) -> list[str]:
        """Return the keys under ``prefix``."""

    @abstractmethod
    def head(self, key: str) -> StorageMetadata:
        """Return only the metadata for ``key``."""

    @abstractmethod
    def copy(self, source: str, destination: str) -> None:
        """Copy an object within the same backend."""

    @abstractmethod
    def backend_type(self) -> StorageBackend:
        """Return the kind of this backend."""

    def batch(self, operations: list[BatchOperation]) -> list[BatchResult]:
        """Run each operation in turn, recording its value or error."""
        results = []
        for op in operations:
            try:
                value = self._run_batch_operation(op)
            except StorageError as exc:
                results.append(BatchResult(key=op.key, error=exc))
            else:
                results.append(BatchResult(key=op.key, value=value))
        return results

    def _run_batch_operation(self, op: BatchOperation) -> bytes | None:
        if op.operation is BatchOperationType.PUT:
            if op.data is None:
                raise OperationFailedError(
                    "batch_put", "No data provided for put operation"
                )
            self.put(op.key, op.data)
            return None
        if op.operation is BatchOperationType.GET:
            return self.get(op.key)
        if op.operation is BatchOperationType.DELETE:
            self.delete(op.key)
            return None
        return b"true" if self.exists(op.key) else b"false"


class StorageManager:
    """Keeps a default backend and per-backend configurations."""

    def __init__(self, default_backend: StorageBackend) -> None:
        self.default_backend = default_backend
        self.configs: dict[StorageBackend, StorageConfig] = {}

    def set_config(self, backend: StorageBackend, config: StorageConfig) -> None:
        self.configs[backend] = config

    def get_config(self, backend: StorageBackend) -> StorageConfig | None:
        return self.configs.get(backend)


def validate_key(key: str) -> None:
    """Raise OperationFailedError when ``key`` is not a usable storage key."""
    if not key:
        raise OperationFailedError("validate_key", "Key cannot be empty")
    if len(key.encode("utf-8")) > MAX_KEY_LENGTH:
        raise OperationFailedError(
            "validate_key", "Key too long (max 1024 characters)"
        )
    if any(ch in key for ch in ("\0", "\n", "\r")):
        raise OperationFailedError("validate_key", "Key contains invalid characters")


def generate_key(prefix: str, suffix: str | None = None) -> str:
    """Build a unique key from a millisecond timestamp and a random UUID."""
    timestamp = time.time_ns() // 1_000_000
    unique = uuid.uuid4()
    if suffix is None:
        return f"{prefix}/{timestamp}-{unique}"
    return f"{prefix}/{timestamp}-{unique}.{suffix}"


def extract_prefix(key: str) -> str | None:
    """Return everything before the last '/', or None if there is none."""
    head, sep, _ = key.rpartition("/")
    return head if sep else None


def extract_filename(key: str) -> str:
    """Return everything after the last '/'."""
    return key.rpartition("/")[2]


def normalize_key(key: str) -> str:
    """Strip leading slashes and collapse doubled slashes."""
    return key.lstrip("/").replace("//", "/")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    timeout: float = 30.0,
) -> T:
    """Await ``operation()`` with a timeout, retrying with exponential backoff.

    Storage errors and timeouts are retried up to ``max_retries`` times; the
    last failure is raised once every attempt has failed.
    """
    last_error: StorageError | None = None
    for attempt in range(max_retries + 1):
        try:
            return await asyncio.wait_for(operation(), timeout)
        except asyncio.TimeoutError:
            last_error = OperationFailedError("retry_operation", "Operation timed out")
        except StorageError as exc:
            last_error = exc
        if attempt < max_retries:
            await asyncio.sleep(0.1 * (1 << attempt))
    if last_error is None:
        last_error = OperationFailedError("retry_operation", "All retry attempts failed")
    raise last_error
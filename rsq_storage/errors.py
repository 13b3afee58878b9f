"""Exceptions raised by storage backends."""

from __future__ import annotations


class StorageError(Exception):
    """Base class for every storage failure."""


class ResourceNotFoundError(StorageError, LookupError):
    """The requested key does not exist."""

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f"Resource not found: {resource}")


class OperationFailedError(StorageError):
    """A storage operation could not be completed."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Operation '{operation}' failed: {reason}")


class BackendNotAvailableError(StorageError):
    """The requested storage backend is not available."""

    def __init__(self, backend: str) -> None:
        self.backend = backend
        super().__init__(f"Storage backend not available: {backend}")


class StorageConnectionError(StorageError):
    """Connecting to a storage service failed."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Connection error: {reason}")
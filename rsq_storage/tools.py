"""Higher-level helpers working across storage backends."""

from __future__ import annotations

from rsq_storage.errors import OperationFailedError, StorageError
from rsq_storage.storage_api import StorageApi, generate_key, validate_key


def copy_between_storages(
    source: StorageApi, source_key: str, destination: StorageApi, dest_key: str
) -> None:
    """Copy one object from ``source`` to ``destination``."""
    destination.put(dest_key, source.get(source_key))


def sync_storage(source: StorageApi, destination: StorageApi, prefix: str) -> list[str]:
    """Copy every readable key under ``prefix`` one way; return the keys copied."""
    synced = []
    for key in source.list(prefix):
        try:
            data = source.get(key)
        except StorageError:
            continue
        destination.put(key, data)
        synced.append(key)
    return synced


def calculate_storage_usage(storage: StorageApi, prefix: str) -> int:
    """Sum the sizes of all objects under ``prefix`` whose metadata can be read."""
    total = 0
    for key in storage.list(prefix):
        try:
            total += storage.head(key).content_length
        except StorageError:
            continue
    return total


def validate_storage_key(key: str) -> None:
    """Raise OperationFailedError when ``key`` is not a usable storage key."""
    validate_key(key)


def generate_unique_key(prefix: str, extension: str | None = None) -> str:
    """Build a unique key under ``prefix`` with an optional extension."""
    return generate_key(prefix, extension)


def compress_data(data: bytes) -> bytes:
    """Run-length encode ``data`` as (count, byte) pairs, runs capped at 255."""
    if not data:
        raise OperationFailedError("compress_data", "Cannot compress empty data")
    out = bytearray()
    current = data[0]
    count = 1
    for byte in data[1:]:
        if byte == current and count < 255:
            count += 1
        else:
            out += bytes((count, current))
            current = byte
            count = 1
    out += bytes((count, current))
    return bytes(out)


def decompress_data(compressed: bytes) -> bytes:
    """Expand (count, byte) pairs; a trailing odd byte is ignored."""
    pairs = zip(compressed[0::2], compressed[1::2])
    return b"".join(bytes([value]) * count for count, value in pairs)
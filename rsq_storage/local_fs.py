"""Filesystem helpers behind the local storage backend."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from rsq_storage.errors import OperationFailedError, ResourceNotFoundError
from rsq_storage.storage_api import StorageMetadata

_CONTENT_TYPES = {
    "txt": "text/plain",
    "json": "application/json",
    "xml": "application/xml",
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "pdf": "application/pdf",
    "zip": "application/zip",
}

_POSIX = os.name == "posix"


@dataclass
class LocalConfig:
    """Settings for storage on the local filesystem."""

    base_path: Path = Path("./storage")
    create_dirs: bool = True
    atomic_writes: bool = True
    file_permissions: int | None = 0o644
    dir_permissions: int | None = 0o755
    compression: bool = False
    max_file_size: int = 1024 * 1024 * 1024
    enable_checksums: bool = False

    def __post_init__(self) -> None:
        self.base_path = Path(self.base_path)


def content_type_for(path: str | os.PathLike[str]) -> str | None:
    """Guess a MIME type from the file extension, or return None."""
    suffix = Path(path).suffix
    if not suffix:
        return None
    return _CONTENT_TYPES.get(suffix[1:].lower())


def _set_mode(path: Path, mode: int | None, operation: str, what: str) -> None:
    if not _POSIX or mode is None:
        return
    try:
        os.chmod(path, mode)
    except OSError as exc:
        raise OperationFailedError(operation, f"Failed to set {what} permissions: {exc}") from exc


def ensure_parent_dir(path: str | os.PathLike[str], config: LocalConfig) -> None:
    """Create the parent directory of ``path`` if missing and allowed."""
    parent = Path(path).parent
    if parent.exists() or not config.create_dirs:
        return
    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OperationFailedError(
            "create_parent_directory", f"Failed to create parent directory: {exc}"
        ) from exc
    _set_mode(parent, config.dir_permissions, "set_directory_permissions", "directory")


def _write_bytes(path: Path, data: bytes, create_op: str, write_op: str, what: str) -> None:
    try:
        handle = open(path, "wb")
    except OSError as exc:
        raise OperationFailedError(create_op, f"Failed to create {what}: {exc}") from exc
    with handle:
        try:
            handle.write(data)
            handle.flush()
        except OSError as exc:
            raise OperationFailedError(write_op, f"Failed to write {what}: {exc}") from exc


def write_file(path: str | os.PathLike[str], data: bytes, config: LocalConfig) -> None:
    """Write ``data`` to ``path``, atomically through a temporary file if configured."""
    path = Path(path)
    if len(data) > config.max_file_size:
        raise OperationFailedError(
            "write_file",
            f"File size {len(data)} exceeds maximum {config.max_file_size}",
        )
    ensure_parent_dir(path, config)

    if config.atomic_writes:
        temp_path = path.with_suffix(".tmp")
        _write_bytes(temp_path, data, "create_temp_file", "write_temp_file", "temporary file")
        try:
            os.replace(temp_path, path)
        except OSError as exc:
            raise OperationFailedError(
                "atomic_rename", f"Failed to rename temporary file: {exc}"
            ) from exc
    else:
        _write_bytes(path, data, "create_file", "write_file", "file")

    _set_mode(path, config.file_permissions, "set_file_permissions", "file")


def read_file(path: str | os.PathLike[str]) -> bytes:
    """Return the contents of ``path``."""
    path = Path(path)
    try:
        handle = open(path, "rb")
    except FileNotFoundError:
        raise ResourceNotFoundError(str(path)) from None
    except OSError as exc:
        raise OperationFailedError("open_file", f"Failed to open file: {exc}") from exc
    with handle:
        try:
            return handle.read()
        except OSError as exc:
            raise OperationFailedError("read_file", f"Failed to read file: {exc}") from exc


def file_metadata(path: str | os.PathLike[str]) -> StorageMetadata:
    """Describe the file at ``path``: size, modification time, type and owner data."""
    path = Path(path)
    try:
        stat = path.stat()
    except FileNotFoundError:
        raise ResourceNotFoundError(str(path)) from None
    except OSError as exc:
        raise OperationFailedError("get_metadata", f"Failed to get file metadata: {exc}") from exc

    seconds, nanos = divmod(stat.st_mtime_ns, 1_000_000_000)
    last_modified = datetime.fromtimestamp(seconds, tz=timezone.utc).replace(
        microsecond=nanos // 1000
    )

    custom: dict[str, str] = {}
    if _POSIX:
        custom["inode"] = str(stat.st_ino)
        custom["mode"] = format(stat.st_mode, "o")
        custom["uid"] = str(stat.st_uid)
        custom["gid"] = str(stat.st_gid)
    elif hasattr(stat, "st_file_attributes"):
        custom["file_attributes"] = str(stat.st_file_attributes)

    return StorageMetadata(
        content_length=stat.st_size,
        content_type=content_type_for(path),
        last_modified=last_modified,
        etag=None,
        custom=custom,
    )


def _entries(dir_path: Path) -> list[Path]:
    try:
        return list(dir_path.iterdir())
    except OSError as exc:
        raise OperationFailedError("read_directory", f"Failed to read directory: {exc}") from exc


def list_files(dir_path: str | os.PathLike[str], prefix: str | None = None) -> list[str]:
    """List files below ``dir_path`` as sorted relative keys.

    Only file names starting with ``prefix`` are kept when it is given.
    """
    dir_path = Path(dir_path)
    if not dir_path.exists():
        return []
    files: list[str] = []
    for entry in _entries(dir_path):
        if entry.is_file():
            if prefix is None or entry.name.startswith(prefix):
                files.append(entry.name)
        elif entry.is_dir():
            files.extend(f"{entry.name}/{sub}" for sub in list_files(entry, prefix))
    files.sort()
    return files


def directory_size(path: str | os.PathLike[str]) -> int:
    """Total size in bytes of a file, or of all files below a directory."""
    path = Path(path)
    if not path.exists():
        return 0
    if path.is_file():
        try:
            return path.stat().st_size
        except OSError as exc:
            raise OperationFailedError(
                "get_file_size", f"Failed to get file size: {exc}"
            ) from exc
    total = 0
    for entry in _entries(path):
        if entry.is_file():
            try:
                total += entry.stat().st_size
            except OSError as exc:
                raise OperationFailedError(
                    "get_file_metadata", f"Failed to get file metadata: {exc}"
                ) from exc
        elif entry.is_dir():
            total += directory_size(entry)
    return total
"""Storage backend that keeps objects as files under a base directory."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from rsq_storage.errors import OperationFailedError, ResourceNotFoundError
from rsq_storage.local_fs import (
    LocalConfig,
    _set_mode,
    directory_size,
    ensure_parent_dir,
    file_metadata,
    list_files,
    read_file,
    write_file,
)
from rsq_storage.storage_api import (
    BatchOperation,
    BatchResult,
    StorageApi,
    StorageBackend,
    StorageConfig,
    StorageMetadata,
    validate_key,
)


class LocalStorage(StorageApi):
    """Local filesystem storage backend."""

    def __init__(
        self,
        local_config: LocalConfig | None = None,
        storage_config: StorageConfig | None = None,
    ) -> None:
        local_config = local_config if local_config is not None else LocalConfig()
        storage_config = storage_config if storage_config is not None else StorageConfig()
        base = local_config.base_path

        if local_config.create_dirs and not base.exists():
            try:
                base.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise OperationFailedError(
                    "create_base_directory", f"Failed to create base directory: {exc}"
                ) from exc
            _set_mode(
                base, local_config.dir_permissions, "set_directory_permissions", "directory"
            )

        if not base.exists():
            raise OperationFailedError(
                "verify_base_directory",
                "Base directory does not exist and create_dirs is disabled",
            )
        if not base.is_dir():
            raise OperationFailedError(
                "verify_base_directory", "Base path exists but is not a directory"
            )

        self.local_config = local_config
        self.config = storage_config

    def _full_path(self, key: str) -> Path:
        return self.local_config.base_path / key

    def put(self, key: str, data: bytes) -> None:
        validate_key(key)
        write_file(self._full_path(key), bytes(data), self.local_config)

    def put_with_metadata(self, key: str, data: bytes, metadata: StorageMetadata) -> None:
        # The filesystem has nowhere to keep arbitrary metadata; store the data only.
        self.put(key, data)

    def get(self, key: str) -> bytes:
        validate_key(key)
        return read_file(self._full_path(key))

    def get_with_metadata(self, key: str) -> tuple[bytes, StorageMetadata]:
        validate_key(key)
        path = self._full_path(key)
        data = read_file(path)
        return data, file_metadata(path)

    def delete(self, key: str) -> None:
        validate_key(key)
        path = self._full_path(key)
        if path.is_file():
            try:
                path.unlink()
            except FileNotFoundError:
                raise ResourceNotFoundError(key) from None
            except OSError as exc:
                raise OperationFailedError(
                    "delete_file", f"Failed to delete file: {exc}"
                ) from exc
        elif path.is_dir():
            try:
                shutil.rmtree(path)
            except OSError as exc:
                raise OperationFailedError(
                    "delete_directory", f"Failed to delete directory: {exc}"
                ) from exc
        else:
            raise ResourceNotFoundError(key)

    def exists(self, key: str) -> bool:
        validate_key(key)
        return self._full_path(key).exists()

    def list(self, prefix: str) -> list[str]:
        base = self.local_config.base_path if not prefix else self._full_path(prefix)
        return list_files(base, None)

    def head(self, key: str) -> StorageMetadata:
        validate_key(key)
        return file_metadata(self._full_path(key))

    def copy(self, source: str, destination: str) -> None:
        validate_key(source)
        validate_key(destination)
        self.copy_file(source, destination)

    def batch(self, operations: list[BatchOperation]) -> list[BatchResult]:
        """Run the operations in order, recording each value or error."""
        return super().batch(operations)

    def copy_file(self, source: str, destination: str) -> None:
        """Copy the file at ``source`` to ``destination``."""
        source_path = self._full_path(source)
        dest_path = self._full_path(destination)
        ensure_parent_dir(dest_path, self.local_config)
        try:
            shutil.copy(source_path, dest_path)
        except OSError as exc:
            raise OperationFailedError("copy_file", f"Failed to copy file: {exc}") from exc

    def move_file(self, source: str, destination: str) -> None:
        """Move the file at ``source`` to ``destination``."""
        source_path = self._full_path(source)
        dest_path = self._full_path(destination)
        ensure_parent_dir(dest_path, self.local_config)
        try:
            os.replace(source_path, dest_path)
        except OSError as exc:
            raise OperationFailedError("move_file", f"Failed to move file: {exc}") from exc

    def get_directory_size(self, path: str) -> int:
        """Total size in bytes of everything stored below ``path``."""
        return directory_size(self._full_path(path))

    def backend_type(self) -> StorageBackend:
        return StorageBackend.LOCAL
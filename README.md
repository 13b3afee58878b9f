# rsq-storage

A small storage library with no third-party dependencies and one API
(`rsq_storage.storage_api.StorageApi`) across backends:

- `LocalStorage` (`rsq_storage.local`) – files under a base directory,
  with atomic writes, Unix permissions, metadata and batch operations.
- `IpfsStorage` (`rsq_storage.ipfs`) – talks to an IPFS node's HTTP API;
  keys are content identifiers.
- `CachingStorage` (`rsq_storage.middleware`) – an in-memory cache in
  front of any other backend.

There is also a simpler key/value interface, `StorageAdapter`, with a
thread-safe in-memory implementation, `MemoryAdapter`
(`rsq_storage.memory`).

## Installation

```
pip install rsq-storage
```

## Local storage

```python
from rsq_storage.local import LocalStorage
from rsq_storage.local_fs import LocalConfig
from rsq_storage.storage_api import StorageConfig

storage = LocalStorage(LocalConfig(base_path="./my_storage"), StorageConfig())

storage.put("my_file.txt", b"Hello, World!")
assert storage.get("my_file.txt") == b"Hello, World!"
assert storage.exists("my_file.txt")

meta = storage.head("my_file.txt")
print(meta.content_type, meta.content_length)   # text/plain 13

storage.delete("my_file.txt")
```

`LocalConfig` options: `base_path` (default `./storage`), `create_dirs`,
`atomic_writes` (write to a `.tmp` file, then rename), `file_permissions`
(default `0o644`), `dir_permissions` (default `0o755`) and
`max_file_size` (default 1 GiB). The base directory is created when
missing if `create_dirs` is set; otherwise a missing base directory is an
error.

`list(prefix)` lists every file below the directory named by `prefix`
(the whole base directory when `prefix` is empty), as sorted keys
relative to that directory. `head` guesses `content_type` from the file
extension and fills `custom` with inode, mode, uid and gid on POSIX
systems. `put_with_metadata` stores the data only. `LocalStorage` also
offers `copy_file`, `move_file` and `get_directory_size`.

The filesystem helpers it is built on (`write_file`, `read_file`,
`file_metadata`, `list_files`, `directory_size`, `content_type_for`,
`ensure_parent_dir`) live in `rsq_storage.local_fs`.

## Errors

All failures derive from `StorageError` in `rsq_storage.errors`:

- `ResourceNotFoundError` – the key does not exist (also a `LookupError`).
- `OperationFailedError` – carries `operation` and `reason`.
- `BackendNotAvailableError` – the requested backend is not available.
- `StorageConnectionError` – a storage service could not be reached.

Keys are checked by `validate_key`: they must be non-empty, at most 1024
bytes, and free of NUL, `\n` and `\r`.

## Batch operations

```python
from rsq_storage.storage_api import BatchOperation, BatchOperationType

results = storage.batch([
    BatchOperation(BatchOperationType.PUT, "a.txt", b"data1"),
    BatchOperation(BatchOperationType.GET, "a.txt"),
    BatchOperation(BatchOperationType.EXISTS, "a.txt"),
])
assert results[1].unwrap() == b"data1"
assert results[2].value == b"true"
```

Operations run in order. Each `BatchResult` holds the key and either a
`value` or the `error` the operation raised; `ok` tells which, and
`unwrap()` returns the value or raises the error.

## IPFS

```python
from rsq_storage.ipfs import IpfsConfig, IpfsStorage

ipfs = IpfsStorage(IpfsConfig(node_url="http://localhost:5001"))
data = ipfs.get("Qm...")
```

The constructor checks the node with a `version` call and raises
`StorageConnectionError` if it cannot be reached. `put` adds the content,
pins it when `auto_pin` is set and reads it back when `verify_content` is
set. Keys starting with `Qm` or `bafy` are treated as content identifiers
for `get`, `head`, `delete` (which unpins), `exists` and `copy` (which
pins). `list` returns every pinned identifier. Further methods:
`pin_content`, `unpin_content`, `is_pinned` (a `PinStatus`),
`get_content_info` (an `IpfsContent`), `list_pinned`, `get_gateway_url`,
`resolve_ipns` and `publish_ipns`.

Helpers that need no node: `validate_ipfs_hash`, `is_likely_ipfs_hash`,
`extract_hash_from_path` and `generate_gateway_url`.

## Caching

```python
from rsq_storage.middleware import CachingStorage

cached = CachingStorage(storage, 10)
cached.put("test.txt", b"Hello")
cached.get("test.txt")   # served from cache
```

When the cache holds `max_cache_size` entries, the oldest one is dropped
before a new one is added. Metadata is not cached, and `batch` goes
straight to the wrapped backend.

## Creating storage

```python
from rsq_storage.factory import create_local, storage_from_url

storage = storage_from_url("file:///tmp/data")
```

`storage_from_url` gives `LocalStorage` for `file://` URLs and for paths
starting with `./` or `/`, and `IpfsStorage` with default settings for
`ipfs://`. `s3://` raises `BackendNotAvailableError`; anything else
raises `OperationFailedError`.

## Utilities

`rsq_storage.tools` provides `copy_between_storages`, `sync_storage`,
`calculate_storage_usage`, `validate_storage_key`, `generate_unique_key`,
and a simple run-length `compress_data` / `decompress_data` pair
(`compress_data` rejects empty input).

`rsq_storage.storage_api` provides `StorageConfig`, `StorageMetadata`,
`StorageBackend`, `StorageManager`, the key helpers `validate_key`,
`generate_key`, `normalize_key`, `extract_prefix` and `extract_filename`,
and the async `with_retry`, which awaits an operation with a timeout and
retries storage errors and timeouts with exponential backoff.

`rsq_storage.hexutil` has `bytes_to_hex`, `hex_to_bytes` and
`validate_key_length`.

## What it does not do

- There is no S3 or other cloud object-storage backend.
- `IpfsStorage` keeps no mapping from chosen keys to content identifiers:
  `put` stores the content but does not return its identifier, and
  objects can only be read back by identifier.
- Local and IPFS storage do not keep metadata passed to
  `put_with_metadata`.
- There is no command-line program.
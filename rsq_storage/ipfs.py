"""Storage backend that keeps objects in an IPFS node through its HTTP API."""

from __future__ import annotations

import enum
import json
import uuid
from dataclasses import dataclass, field
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode, urlparse
from urllib.request import Request, urlopen

from rsq_storage.errors import (
    OperationFailedError,
    ResourceNotFoundError,
    StorageConnectionError,
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

_CONNECT_TIMEOUT = 10.0


@dataclass
class IpfsConfig:
    """Settings for talking to an IPFS node."""

    node_url: str = "http://localhost:5001"
    gateway_url: str = "http://localhost:8080"
    auto_pin: bool = True
    pin_timeout: float = 60.0
    max_file_size: int = 100 * 1024 * 1024
    verify_content: bool = True
    custom_headers: dict[str, str] = field(default_factory=dict)


@dataclass
class IpfsContent:
    """Information about a piece of content held by IPFS."""

    hash: str
    size: int
    content_type: str | None = None
    pinned: bool = False
    metadata: dict[str, str] = field(default_factory=dict)


class PinStatus(enum.Enum):
    """Whether content is pinned on the node."""

    PINNED = "pinned"
    UNPINNED = "unpinned"
    UNKNOWN = "unknown"


class _ApiError(Exception):
    """The node answered with an error or could not be reached."""


def _looks_like_cid(key: str) -> bool:
    return key.startswith("Qm") or key.startswith("bafy")


def _decode_json(raw: bytes) -> dict[str, Any]:
    lines = [line for line in raw.decode("utf-8").splitlines() if line.strip()]
    if not lines:
        return {}
    return json.loads(lines[-1])


class IpfsStorage(StorageApi):
    """IPFS storage backend; keys are content identifiers."""

    def __init__(
        self,
        ipfs_config: IpfsConfig | None = None,
        storage_config: StorageConfig | None = None,
    ) -> None:
        ipfs_config = ipfs_config if ipfs_config is not None else IpfsConfig()
        storage_config = storage_config if storage_config is not None else StorageConfig()

        parsed = urlparse(ipfs_config.node_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise StorageConnectionError(
                f"Failed to create IPFS client: invalid node URL {ipfs_config.node_url!r}"
            )

        self.ipfs_config = ipfs_config
        self.config = storage_config
        self._api_base = ipfs_config.node_url.rstrip("/") + "/api/v0/"
        self._test_connection()

    # --- HTTP plumbing -------------------------------------------------

    def _post(
        self,
        endpoint: str,
        params: dict[str, str] | None = None,
        body: bytes | None = None,
        content_type: str | None = None,
        timeout: float | None = None,
    ) -> bytes:
        url = self._api_base + endpoint
        if params:
            url += "?" + urlencode(params)
        headers = dict(self.ipfs_config.custom_headers)
        if content_type is not None:
            headers["Content-Type"] = content_type
        request = Request(url, data=body if body is not None else b"", headers=headers, method="POST")
        try:
            with urlopen(request, timeout=timeout if timeout is not None else self.config.timeout) as resp:
                return resp.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise _ApiError(f"HTTP {exc.code}: {detail}") from exc
        except URLError as exc:
            if isinstance(exc.reason, TimeoutError):
                raise TimeoutError(str(exc.reason)) from exc
            raise _ApiError(str(exc.reason)) from exc
        except TimeoutError:
            raise
        except OSError as exc:
            raise _ApiError(str(exc)) from exc

    def _call(self, operation: str, reason: str, endpoint: str, **kwargs: Any) -> bytes:
        try:
            return self._post(endpoint, **kwargs)
        except (_ApiError, TimeoutError) as exc:
            raise OperationFailedError(operation, f"{reason}: {exc}") from exc

    def _test_connection(self) -> None:
        try:
            self._post("version", timeout=_CONNECT_TIMEOUT)
        except TimeoutError as exc:
            raise StorageConnectionError("IPFS node connection timeout") from exc
        except _ApiError as exc:
            raise StorageConnectionError(f"IPFS node connection failed: {exc}") from exc

    # --- content operations --------------------------------------------

    def _add_content(self, data: bytes) -> str:
        if len(data) > self.ipfs_config.max_file_size:
            raise OperationFailedError(
                "add_content",
                f"File size {len(data)} exceeds maximum {self.ipfs_config.max_file_size}",
            )
        boundary = uuid.uuid4().hex
        body = (
            f"--{boundary}\r\n"
            'Content-Disposition: form-data; name="file"; filename="file"\r\n'
            "Content-Type: application/octet-stream\r\n\r\n"
        ).encode("ascii") + data + f"\r\n--{boundary}--\r\n".encode("ascii")
        raw = self._call(
            "ipfs_add",
            "Failed to add content to IPFS",
            "add",
            body=body,
            content_type=f"multipart/form-data; boundary={boundary}",
        )
        cid = _decode_json(raw)["Hash"]

        if self.ipfs_config.auto_pin:
            self.pin_content(cid)
        if self.ipfs_config.verify_content:
            self._verify_content_integrity(cid, data)
        return cid

    def _get_content(self, cid: str) -> bytes:
        return self._call(
            "ipfs_cat", "Failed to retrieve content from IPFS", "cat", params={"arg": cid}
        )

    def _verify_content_integrity(self, cid: str, original: bytes) -> None:
        if self._get_content(cid) != original:
            raise OperationFailedError(
                "verify_content", "Content integrity verification failed"
            )

    def pin_content(self, cid: str) -> None:
        """Pin ``cid`` recursively, waiting at most the configured pin timeout."""
        try:
            self._post(
                "pin/add",
                params={"arg": cid, "recursive": "true"},
                timeout=self.ipfs_config.pin_timeout,
            )
        except TimeoutError as exc:
            raise OperationFailedError("pin_timeout", "Pin operation timed out") from exc
        except _ApiError as exc:
            raise OperationFailedError(
                "ipfs_pin_add", f"Failed to pin content: {exc}"
            ) from exc

    def unpin_content(self, cid: str) -> None:
        """Remove the recursive pin on ``cid``."""
        self._call(
            "ipfs_pin_rm",
            "Failed to unpin content",
            "pin/rm",
            params={"arg": cid, "recursive": "true"},
        )

    def is_pinned(self, cid: str) -> PinStatus:
        """Report the pin status of ``cid``; UNKNOWN when the node cannot say."""
        try:
            keys = _decode_json(self._post("pin/ls", params={"arg": cid})).get("Keys") or {}
        except (_ApiError, TimeoutError, ValueError):
            return PinStatus.UNKNOWN
        return PinStatus.PINNED if cid in keys else PinStatus.UNPINNED

    def get_content_info(self, cid: str) -> IpfsContent:
        """Return size and pin status of ``cid``."""
        raw = self._call(
            "ipfs_object_stat",
            "Failed to get object stats",
            "object/stat",
            params={"arg": cid},
        )
        size = int(_decode_json(raw).get("CumulativeSize", 0))
        return IpfsContent(
            hash=cid,
            size=size,
            content_type=None,
            pinned=self.is_pinned(cid) is PinStatus.PINNED,
        )

    def list_pinned(self) -> list[str]:
        """Return the identifiers of all pinned content."""
        raw = self._call(
            "ipfs_pin_ls", "Failed to list pinned content", "pin/ls"
        )
        return list((_decode_json(raw).get("Keys") or {}).keys())

    def get_gateway_url(self, cid: str) -> str:
        """Return the gateway URL at which ``cid`` can be fetched."""
        return f"{self.ipfs_config.gateway_url}/ipfs/{cid}"

    def resolve_ipns(self, name: str) -> str:
        """Resolve an IPNS name to the content identifier it points at."""
        raw = self._call(
            "ipfs_name_resolve",
            "Failed to resolve IPNS name",
            "name/resolve",
            params={"arg": name, "recursive": "true"},
        )
        path = _decode_json(raw).get("Path", "")
        return path.removeprefix("/ipfs/") if path.startswith("/ipfs/") else path

    def publish_ipns(self, cid: str, key: str | None = None) -> str:
        """Publish ``cid`` under IPNS and return the published name."""
        params = {"arg": cid, "resolve": "true"}
        if key is not None:
            params["key"] = key
        raw = self._call(
            "ipfs_name_publish", "Failed to publish to IPNS", "name/publish", params=params
        )
        return _decode_json(raw)["Name"]

    # --- StorageApi ----------------------------------------------------

    def put(self, key: str, data: bytes) -> None:
        validate_key(key)
        self._add_content(bytes(data))

    def put_with_metadata(self, key: str, data: bytes, metadata: StorageMetadata) -> None:
        # IPFS keeps no metadata alongside content; store the data only.
        self.put(key, data)

    def get(self, key: str) -> bytes:
        validate_key(key)
        if not _looks_like_cid(key):
            raise ResourceNotFoundError(key)
        return self._get_content(key)

    def get_with_metadata(self, key: str) -> tuple[bytes, StorageMetadata]:
        data = self.get(key)
        return data, StorageMetadata(content_length=len(data), etag=key)

    def delete(self, key: str) -> None:
        validate_key(key)
        if _looks_like_cid(key):
            self.unpin_content(key)

    def exists(self, key: str) -> bool:
        validate_key(key)
        if not _looks_like_cid(key):
            return False
        try:
            self._post("object/stat", params={"arg": key})
        except (_ApiError, TimeoutError):
            return False
        return True

    def list(self, prefix: str) -> list[str]:
        return self.list_pinned()

    def head(self, key: str) -> StorageMetadata:
        validate_key(key)
        if not _looks_like_cid(key):
            raise ResourceNotFoundError(key)
        info = self.get_content_info(key)
        return StorageMetadata(
            content_length=info.size,
            content_type=info.content_type,
            etag=info.hash,
            custom=info.metadata,
        )

    def copy(self, source: str, destination: str) -> None:
        validate_key(source)
        if not _looks_like_cid(source):
            raise OperationFailedError("copy", "Copy operation not supported for IPFS")
        self.pin_content(source)

    def batch(self, operations: list[BatchOperation]) -> list[BatchResult]:
        """Run the operations in order, recording each value or error."""
        return super().batch(operations)

    def backend_type(self) -> StorageBackend:
        return StorageBackend.IPFS


def validate_ipfs_hash(value: str) -> bool:
    """Basic shape check for CIDv0 and CIDv1 identifiers."""
    return (
        (value.startswith("Qm") and len(value) == 46)
        or value.startswith("bafy")
        or value.startswith("bafk")
    )


def extract_hash_from_path(path: str) -> str | None:
    """Return the identifier from an ``/ipfs/<cid>/...`` path, or None."""
    if not path.startswith("/ipfs/"):
        return None
    return path[len("/ipfs/"):].split("/", 1)[0]


def generate_gateway_url(gateway_base: str, cid: str) -> str:
    """Join a gateway base URL and an identifier."""
    return f"{gateway_base.rstrip('/')}/ipfs/{cid}"


def is_likely_ipfs_hash(value: str) -> bool:
    """Tell whether ``value`` looks like an IPFS identifier."""
    return validate_ipfs_hash(value)
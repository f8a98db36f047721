"""
In-memory storage backend.

This implementation explicitly subclasses the backend protocols to ensure
interface changes break CI immediately, preventing silent drift. Used by the
test suite and by the "memory" backend setting for local development.
"""
from __future__ import annotations

import asyncio
import base64
import binascii
import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, List, Optional, Tuple
from urllib.parse import quote, unquote

import httpx

from ..base import BlobBackendRef, Capability, StorageBackend
from ..errors import StorageError, StorageNotFound, StoragePermissionDenied, StorageUnknown
from ..formats import decode_string, format_from_token
from ..paths import is_listable_name, last_component, normalize_path, parse_object_url
from ..upload import PendingUpload

__all__ = ["InMemoryStorageBackend", "MemoryRef"]

DEFAULT_CAPABILITIES = frozenset({Capability.BLOB_UPLOAD, Capability.PAUSE_RESUME})

DOWNLOAD_HOST = "https://memory.storage.invalid"

_SETTABLE_KEYS = (
    "cacheControl",
    "contentDisposition",
    "contentEncoding",
    "contentLanguage",
    "contentType",
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _encode_token(name: str) -> str:
    return base64.urlsafe_b64encode(name.encode("utf-8")).decode("ascii")


def _decode_token(token: str) -> str:
    try:
        return base64.urlsafe_b64decode(token.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError) as e:
        raise StorageUnknown(f"Invalid page token: {token!r}", code="invalid-argument") from e


@dataclass
class _StoredObject:
    data: bytes
    metadata: Dict[str, Any] = field(default_factory=dict)


class MemoryRef(BlobBackendRef):
    """Handle on one path of an InMemoryStorageBackend."""

    def __init__(self, backend: InMemoryStorageBackend, bucket: str, full_path: str) -> None:
        self._backend = backend
        self.bucket = bucket
        self.full_path = full_path

    @property
    def _key(self) -> Tuple[str, str]:
        return (self.bucket, self.full_path)

    def _stored(self) -> _StoredObject:
        self._backend._check(self.full_path)
        stored = self._backend._objects.get(self._key)
        if stored is None:
            raise StorageNotFound(f"Object 'gs://{self.bucket}/{self.full_path}' does not exist.", path=self.full_path)
        return stored

    async def delete(self) -> None:
        self._stored()
        del self._backend._objects[self._key]

    async def get_download_url(self) -> str:
        stored = self._stored()
        token = stored.metadata["downloadTokens"].split(",")[0]
        return f"{DOWNLOAD_HOST}/v0/b/{self.bucket}/o/{quote(self.full_path, safe='')}?alt=media&token={token}"

    async def get_metadata(self) -> Dict[str, Any]:
        return dict(self._stored().metadata)

    async def list(self, options: Dict[str, Any]) -> Dict[str, Any]:
        self._backend._check(self.full_path)
        max_results = options.get("maxResults") or 1000
        start_after = _decode_token(options["pageToken"]) if options.get("pageToken") else None

        prefix = f"{self.full_path}/" if self.full_path else ""
        items = set()
        prefixes = set()
        for bucket, name in self._backend._objects:
            if bucket != self.bucket or not name.startswith(prefix) or not is_listable_name(name):
                continue
            rest = name[len(prefix):]
            if "/" in rest:
                prefixes.add(prefix + rest.split("/", 1)[0])
            else:
                items.add(name)

        # Items and prefixes share one ordering, as in a delimiter listing
        entries = sorted([(name, "items") for name in items] + [(name, "prefixes") for name in prefixes])
        if start_after is not None:
            entries = [entry for entry in entries if entry[0] > start_after]

        page = entries[:max_results]
        result: Dict[str, Any] = {
            "items": [name for name, kind in page if kind == "items"],
            "prefixes": [name for name, kind in page if kind == "prefixes"],
        }
        if len(entries) > max_results:
            result["nextPageToken"] = _encode_token(page[-1][0])
        return result

    async def list_all(self) -> Dict[str, Any]:
        items: List[str] = []
        prefixes: List[str] = []
        options: Dict[str, Any] = {"maxResults": 1000}
        while True:
            page = await self.list(options)
            items.extend(page["items"])
            prefixes.extend(page["prefixes"])
            token = page.get("nextPageToken")
            if not token:
                return {"items": items, "prefixes": prefixes}
            options = {"maxResults": 1000, "pageToken": token}

    def put(self, data: bytes, metadata: Dict[str, Any]) -> PendingUpload:
        return self._backend._start_upload(self, bytes(data), metadata)

    def put_blob(self, data: bytes, metadata: Dict[str, Any]) -> PendingUpload:
        return self._backend._start_upload(self, bytes(data), metadata)

    def put_string(self, data: str, format: str, metadata: Dict[str, Any]) -> PendingUpload:
        decoded = decode_string(data, format_from_token(format))
        metadata = dict(metadata)
        if decoded.content_type and "contentType" not in metadata:
            metadata["contentType"] = decoded.content_type
        return self._backend._start_upload(self, decoded.data, metadata)

    async def update_metadata(self, metadata: Dict[str, Any]) -> Dict[str, Any]:
        stored = self._stored()
        for key in _SETTABLE_KEYS:
            if key in metadata:
                stored.metadata[key] = metadata[key]
        if "customMetadata" in metadata:
            custom = dict(stored.metadata.get("customMetadata") or {})
            custom.update(metadata["customMetadata"])
            stored.metadata["customMetadata"] = custom
        stored.metadata["metageneration"] = str(int(stored.metadata["metageneration"]) + 1)
        stored.metadata["updated"] = _now()
        return dict(stored.metadata)


class InMemoryStorageBackend(StorageBackend):
    """
    Process-local bucket storage.

    This is a test double; not for production use. Emulates the behaviors
    callers rely on: listing skips names ending in "/" or containing "//",
    page tokens are opaque, uploads progress in chunks and can be paused or
    cancelled between chunks, and download URLs are served by transport().
    """

    def __init__(
        self,
        bucket: str = "test-bucket",
        *,
        capabilities: FrozenSet[Capability] = DEFAULT_CAPABILITIES,
        chunk_size: int = 256 * 1024,
    ) -> None:
        self.bucket = bucket
        self.capabilities = frozenset(capabilities)
        self.chunk_size = chunk_size
        self._objects: Dict[Tuple[str, str], _StoredObject] = {}
        self._denied: List[str] = []
        self._failures: List[StorageError] = []
        self._generation = 0

    def ref(self, path: Optional[str]) -> MemoryRef:
        return MemoryRef(self, self.bucket, normalize_path(path))

    def ref_from_url(self, url: str) -> MemoryRef:
        parsed = parse_object_url(url)
        return MemoryRef(self, parsed.bucket, parsed.path)

    async def aclose(self) -> None:
        pass

    def _check(self, path: str) -> None:
        if self._failures:
            raise self._failures.pop(0)
        for prefix in self._denied:
            if not prefix or path == prefix or path.startswith(prefix.rstrip("/") + "/"):
                raise StoragePermissionDenied(
                    f"User does not have permission to access '{path}'.", path=path
                )

    def _start_upload(self, ref: MemoryRef, data: bytes, metadata: Dict[str, Any]) -> PendingUpload:
        async def transfer(upload: PendingUpload) -> Dict[str, Any]:
            self._check(ref.full_path)
            sent = 0
            while sent < len(data):
                await asyncio.sleep(0)
                sent = min(sent + self.chunk_size, len(data))
                await upload.checkpoint(sent)
            return self._store(ref, data, metadata)

        return PendingUpload(transfer, total_bytes=len(data), path=ref.full_path)

    def _store(self, ref: MemoryRef, data: bytes, metadata: Dict[str, Any]) -> Dict[str, Any]:
        self._generation += 1
        now = _now()
        stored_metadata: Dict[str, Any] = {
            "bucket": ref.bucket,
            "fullPath": ref.full_path,
            "name": last_component(ref.full_path),
            "size": len(data),
            "md5Hash": metadata.get("md5Hash") or base64.b64encode(hashlib.md5(data).digest()).decode("ascii"),
            "contentType": "application/octet-stream",
            "generation": str(self._generation),
            "metageneration": "1",
            "timeCreated": now,
            "updated": now,
            "downloadTokens": str(uuid.uuid4()),
        }
        for key in _SETTABLE_KEYS + ("customMetadata",):
            if metadata.get(key) is not None:
                stored_metadata[key] = metadata[key]
        self._objects[(ref.bucket, ref.full_path)] = _StoredObject(data=data, metadata=stored_metadata)
        return dict(stored_metadata)

    # Test utilities

    def seed(self, path: str, data: bytes, **metadata: Any) -> Dict[str, Any]:
        """
        Store an object directly, bypassing uploads.

        The path is used verbatim, so names the namespace forbids (trailing
        "/", "//") can be created to exercise listing rules.
        """
        ref = MemoryRef(self, self.bucket, path)
        return self._store(ref, data, metadata)

    def deny(self, prefix: str = "") -> None:
        """Reject every operation on prefix and below ("" denies everything)."""
        self._denied.append(prefix)

    def fail_next(self, error: StorageError) -> None:
        """Raise error from the next backend operation."""
        self._failures.append(error)

    def clear(self) -> None:
        """Clear all stored data and injected rules (test utility)."""
        self._objects.clear()
        self._denied.clear()
        self._failures.clear()

    def transport(self) -> httpx.MockTransport:
        """httpx transport serving the URLs returned by get_download_url()."""

        def handler(request: httpx.Request) -> httpx.Response:
            segments = request.url.raw_path.decode("ascii").split("?", 1)[0].split("/")
            # ["", "v0", "b", bucket, "o", encoded-path]
            if len(segments) != 6 or segments[1:3] != ["v0", "b"] or segments[4] != "o":
                return httpx.Response(400, json={"error": {"code": 400, "message": "Malformed download URL"}})
            stored = self._objects.get((unquote(segments[3]), unquote(segments[5])))
            if stored is None:
                return httpx.Response(404, json={"error": {"code": 404, "message": "Not Found."}})
            tokens = stored.metadata["downloadTokens"].split(",")
            if request.url.params.get("token") not in tokens:
                return httpx.Response(403, json={"error": {"code": 403, "message": "Permission denied."}})
            return httpx.Response(
                200, content=stored.data, headers={"Content-Type": stored.metadata["contentType"]}
            )

        return httpx.MockTransport(handler)

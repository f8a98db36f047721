"""
Storage backend interfaces for cloudbind.

These protocols define the boundary between References and backend
implementations, enabling clean dependency injection and testing with fakes.

Backend-native shapes are plain dicts in the Firebase Storage JSON form:
- metadata: {"bucket", "name", "fullPath", "size", "md5Hash", "contentType",
  "customMetadata", "timeCreated", "updated", ...}
- list page: {"items": [full paths], "prefixes": [full paths], "nextPageToken"}
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Optional, Protocol, runtime_checkable


__all__ = [
    "Capability",
    "TaskState",
    "UploadHandle",
    "BackendRef",
    "BlobBackendRef",
    "StorageBackend",
]


class Capability(str, Enum):
    """Optional backend features that callers negotiate before use."""
    BLOB_UPLOAD = "blob_upload"
    PAUSE_RESUME = "pause_resume"


class TaskState(str, Enum):
    """Lifecycle of a transfer; SUCCESS, CANCELED and ERROR are terminal."""
    RUNNING = "running"
    PAUSED = "paused"
    SUCCESS = "success"
    CANCELED = "canceled"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self in (TaskState.SUCCESS, TaskState.CANCELED, TaskState.ERROR)


@runtime_checkable
class UploadHandle(Protocol):
    """
    Backend pending-operation handle for one upload.

    Awaiting the handle yields the final backend metadata dict, or raises a
    StorageError. The outcome is settled exactly once.
    """
    total_bytes: int
    bytes_transferred: int
    state: TaskState

    def add_listener(self, callback: Callable[["UploadHandle"], None]) -> Callable[[], None]:
        """Register a progress/state callback; returns a function that removes it."""
        ...

    def pause(self) -> bool:
        ...

    def resume(self) -> bool:
        ...

    def cancel(self) -> bool:
        ...

    def __await__(self):
        ...


@runtime_checkable
class BackendRef(Protocol):
    """Backend-native handle bound to one object path."""
    bucket: str
    full_path: str

    async def delete(self) -> None:
        """
        Delete the object.

        Raises:
            StorageNotFound: If the object does not exist
            StoragePermissionDenied: If rules deny the deletion
            StorageUnavailable: On transient failure
        """
        ...

    async def get_download_url(self) -> str:
        """Return a long-lived download URL for the object."""
        ...

    async def get_metadata(self) -> Dict[str, Any]:
        """Return the backend metadata dict."""
        ...

    async def list(self, options: Dict[str, Any]) -> Dict[str, Any]:
        """
        Fetch one list page.

        Args:
            options: {"maxResults": int, "pageToken": str}, keys optional
        """
        ...

    async def list_all(self) -> Dict[str, Any]:
        """Fetch every page and return one aggregated list dict."""
        ...

    def put(self, data: bytes, metadata: Dict[str, Any]) -> UploadHandle:
        """Start uploading data; returns without waiting for the transfer."""
        ...

    def put_string(self, data: str, format: str, metadata: Dict[str, Any]) -> UploadHandle:
        """
        Start uploading a string payload.

        Args:
            data: Encoded text
            format: Backend format token ("raw", "base64", "base64url", "data_url")
            metadata: Upload metadata dict

        Raises:
            ValueError: If data is not valid for format (synchronously)
        """
        ...

    async def update_metadata(self, metadata: Dict[str, Any]) -> Dict[str, Any]:
        """Apply the settable fields and return the updated metadata dict."""
        ...


@runtime_checkable
class BlobBackendRef(BackendRef, Protocol):
    """BackendRef of a backend declaring Capability.BLOB_UPLOAD."""

    def put_blob(self, data: bytes, metadata: Dict[str, Any]) -> UploadHandle:
        """Start uploading bytes already read from a blob by the Reference."""
        ...


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol for storage backends injected into Storage."""
    bucket: str
    capabilities: FrozenSet[Capability]

    def ref(self, path: Optional[str]) -> BackendRef:
        """Bind a path relative to the bucket root (None for the root). No I/O."""
        ...

    def ref_from_url(self, url: str) -> BackendRef:
        """Bind an absolute gs:// or http(s):// object URL. No I/O."""
        ...

    async def aclose(self) -> None:
        """Release network resources held by the backend."""
        ...


"""
Storage error classes.

Provides a clear taxonomy of errors that can occur during storage operations.
These errors are mapped from HTTP status codes and backend error codes to provide
a consistent error interface regardless of the underlying backend.
"""
from __future__ import annotations

from typing import Optional


class StorageError(Exception):
    """
    Base class for all storage errors.

    Carries the backend's error code (when one was reported) and the full path
    of the object the failed operation targeted.
    """
    default_code = "unknown"

    def __init__(self, message: str, *, code: Optional[str] = None, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.path = path


class StorageNotFound(StorageError):
    """
    Object or bucket does not exist.

    Raised when:
    - HTTP 404 Not Found
    - Backend code "object-not-found" / "bucket-not-found"
    - A download URL is requested for an object without download tokens
    """
    default_code = "object-not-found"


class StoragePermissionDenied(StorageError):
    """
    Authentication or authorization error.

    Raised when:
    - HTTP 401 Unauthorized (missing or expired token)
    - HTTP 403 Forbidden (security rules deny the operation)
    """
    default_code = "unauthorized"


class StorageUnavailable(StorageError):
    """
    Transient failure; the same call may succeed later.

    Raised when:
    - HTTP 408, 429 or any 5xx status
    - Connection errors and timeouts
    """
    default_code = "retry-limit-exceeded"


class StorageUnsupported(StorageError):
    """
    The backend cannot perform the requested operation.

    Raised synchronously, before any backend call, when the backend does
    not declare the capability the operation needs.
    """
    default_code = "unsupported"


class StorageUnknown(StorageError):
    """Backend error not otherwise classified."""
    default_code = "unknown"


class StorageCanceled(StorageError):
    """The transfer was cancelled through its Task."""
    default_code = "canceled"


# Backend error codes (the part after "storage/") to taxonomy classes
_CODE_CLASSES = {
    "object-not-found": StorageNotFound,
    "bucket-not-found": StorageNotFound,
    "project-not-found": StorageNotFound,
    "no-download-url": StorageNotFound,
    "unauthenticated": StoragePermissionDenied,
    "unauthorized": StoragePermissionDenied,
    "quota-exceeded": StorageUnavailable,
    "retry-limit-exceeded": StorageUnavailable,
    "server-file-wrong-size": StorageUnknown,
    "canceled": StorageCanceled,
    "unsupported": StorageUnsupported,
}


def error_for_code(code: str, message: str, *, path: Optional[str] = None) -> StorageError:
    """
    Build the taxonomy error for a backend error code.

    Accepts codes with or without the "storage/" prefix; unrecognized codes
    become StorageUnknown with the code preserved.
    """
    short = code.split("/", 1)[1] if code.startswith("storage/") else code
    cls = _CODE_CLASSES.get(short, StorageUnknown)
    return cls(message, code=short, path=path)


def error_for_status(status_code: int, message: str, *, path: Optional[str] = None) -> StorageError:
    """
    Build the taxonomy error for an HTTP status code.

    Args:
        status_code: HTTP response status
        message: Error message (the backend's message when it sent one)
        path: Full path of the object the request targeted

    Returns:
        StorageError subclass instance (not raised)
    """
    if status_code == 404:
        return StorageNotFound(message, path=path)
    if status_code == 401:
        return StoragePermissionDenied(message, code="unauthenticated", path=path)
    if status_code == 403:
        return StoragePermissionDenied(message, path=path)
    if status_code == 429:
        return StorageUnavailable(message, code="quota-exceeded", path=path)
    if status_code == 408 or status_code >= 500:
        return StorageUnavailable(message, path=path)
    return StorageUnknown(message, code=f"http-{status_code}", path=path)


__all__ = [
    "StorageError",
    "StorageNotFound",
    "StoragePermissionDenied",
    "StorageUnavailable",
    "StorageUnsupported",
    "StorageUnknown",
    "StorageCanceled",
    "error_for_code",
    "error_for_status",
]

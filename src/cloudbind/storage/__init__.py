"""
Storage package - References to objects in a cloud storage bucket.

Storage is the entry point; References address objects and folders and run
the awaited operations; uploads return Tasks. Backends are injected, see
make_backend() for the shipped implementations.
"""
from .base import Capability, TaskState
from .client import Storage, make_backend
from .errors import (
    StorageCanceled,
    StorageError,
    StorageNotFound,
    StoragePermissionDenied,
    StorageUnavailable,
    StorageUnknown,
    StorageUnsupported,
)
from .formats import PutStringFormat
from .models import FullMetadata, ListOptions, ListResult, SettableMetadata
from .reference import Reference
from .task import Task, TaskSnapshot

__all__ = [
    "Capability",
    "FullMetadata",
    "ListOptions",
    "ListResult",
    "PutStringFormat",
    "Reference",
    "SettableMetadata",
    "Storage",
    "StorageCanceled",
    "StorageError",
    "StorageNotFound",
    "StoragePermissionDenied",
    "StorageUnavailable",
    "StorageUnknown",
    "StorageUnsupported",
    "Task",
    "TaskSnapshot",
    "TaskState",
    "make_backend",
]

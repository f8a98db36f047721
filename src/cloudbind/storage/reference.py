"""
Storage references.

A Reference binds one path (or absolute object URL) to a backend-native
handle at construction and exposes the operations scoped to that object.
Read, list, delete and metadata operations are coroutines; uploads return a
Task immediately.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Union

import httpx

from .base import BackendRef, Capability
from .errors import StorageUnavailable, StorageUnsupported, error_for_status
from .formats import PutStringFormat, data_url_content_type
from .hashing import Blob, blob_bytes, code_units, md5_base64
from .models import FullMetadata, ListOptions, ListResult, SettableMetadata
from .paths import child_path, is_absolute_url, last_component, parent_path
from .task import Task
from .translate import (
    backend_to_full_metadata,
    backend_to_list_result,
    format_to_backend,
    list_options_to_backend,
    settable_to_update_metadata,
    settable_to_upload_metadata,
)

if TYPE_CHECKING:
    from os import PathLike

    from .client import Storage

__all__ = ["Reference"]

logger = logging.getLogger(__name__)


class Reference:
    """
    Handle identifying one object in the storage namespace.

    Construction never performs I/O and never fails: paths beginning with
    gs://, http:// or https:// are bound through the backend's URL lookup,
    anything else relative to the bucket root (None is the root). Errors from
    a bad path surface when an operation runs.
    """

    def __init__(self, storage: Storage, path: Optional[str] = None) -> None:
        self.storage = storage
        self._path = path
        if is_absolute_url(path):
            self._ref: BackendRef = storage.backend.ref_from_url(path)
        else:
            self._ref = storage.backend.ref(path)

    # Identity and navigation

    @property
    def bucket(self) -> str:
        return self._ref.bucket

    @property
    def full_path(self) -> str:
        return self._ref.full_path

    @property
    def name(self) -> str:
        return last_component(self._ref.full_path)

    @property
    def parent(self) -> Optional[Reference]:
        """Reference to the containing folder; None at the root."""
        path = parent_path(self._ref.full_path)
        if path is None:
            return None
        return self._sibling(path)

    @property
    def root(self) -> Reference:
        return self._sibling("")

    def child(self, path: str) -> Reference:
        """Reference to a path below this one ("a/b" descends two levels)."""
        return self._sibling(child_path(self._ref.full_path, path))

    def _sibling(self, path: str) -> Reference:
        # Stay in this reference's bucket, which may not be the storage default
        if self.bucket != self.storage.bucket:
            return self.storage.ref(f"gs://{self.bucket}/{path}")
        return self.storage.ref(path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Reference):
            return NotImplemented
        return (self.bucket, self.full_path) == (other.bucket, other.full_path)

    def __hash__(self) -> int:
        return hash((self.bucket, self.full_path))

    def __repr__(self) -> str:
        return f"Reference(gs://{self.bucket}/{self.full_path})"

    # Awaited operations

    async def delete(self) -> None:
        """
        Delete the object at this location.

        Raises:
            StorageNotFound: If the object does not exist
            StoragePermissionDenied: If security rules deny the deletion
            StorageUnavailable: On transient network failure
        """
        logger.debug(f"Deleting gs://{self.bucket}/{self.full_path}")
        await self._ref.delete()

    async def get_download_url(self) -> str:
        """Long-lived download URL for the object."""
        url = await self._ref.get_download_url()
        return str(url)

    async def get_metadata(self) -> FullMetadata:
        """Metadata of the object at this location."""
        return backend_to_full_metadata(await self._ref.get_metadata())

    async def list(self, options: Optional[ListOptions] = None) -> ListResult:
        """
        List one page of items (objects) and prefixes (folders) under this
        location. Does not follow next_page_token; pass it back in options.

        Objects whose names end with "/" or contain "//" are never listed.
        """
        raw = await self._ref.list(list_options_to_backend(options))
        return backend_to_list_result(self.storage, raw, bucket=self.bucket)

    async def list_all(self) -> ListResult:
        """
        List every item and prefix under this location.

        Pages through the backend listing (page size 1000) until exhausted.
        Results may be inconsistent if objects change during the listing, and
        very large folders are held in memory at once.
        """
        raw = await self._ref.list_all()
        return backend_to_list_result(self.storage, raw, bucket=self.bucket)

    async def get_data(self, max_size: Optional[int] = None) -> Optional[bytes]:
        """
        Download the object into memory.

        Args:
            max_size: Size limit in bytes; the storage default when None,
                unbounded when zero or negative

        Returns:
            Object bytes, or None when the object is larger than max_size
            (nothing is downloaded in that case)

        Raises:
            StorageNotFound, StoragePermissionDenied: From metadata/URL lookup
                or the download itself
            StorageUnavailable: On transient network failure
        """
        if max_size is None:
            max_size = self.storage.max_download_size

        if max_size > 0:
            metadata = await self.get_metadata()
            if metadata.size is not None and metadata.size > max_size:
                logger.warning(
                    f"Skipping download of gs://{self.bucket}/{self.full_path}: "
                    f"{metadata.size} bytes exceeds limit of {max_size}"
                )
                return None

        url = await self.get_download_url()
        try:
            response = await self.storage.http.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise error_for_status(
                e.response.status_code, f"Download failed: {e}", path=self.full_path
            ) from e
        except httpx.RequestError as e:
            raise StorageUnavailable(f"Network error downloading {self.full_path}: {e}", path=self.full_path) from e
        return response.content

    async def update_metadata(self, metadata: SettableMetadata) -> FullMetadata:
        """Set the given metadata fields; unset fields are left unchanged."""
        raw = await self._ref.update_metadata(settable_to_update_metadata(metadata))
        return backend_to_full_metadata(raw)

    # Uploads (return immediately)

    def put_data(self, data: Union[bytes, bytearray, memoryview], metadata: Optional[SettableMetadata] = None) -> Task:
        """
        Start uploading bytes to this location.

        The MD5 hash of data is computed here and sent with the metadata.
        Must be called with an event loop running.
        """
        data = bytes(data)
        upload_metadata = settable_to_upload_metadata(metadata, md5_hash=md5_base64(data))
        logger.debug(f"Uploading {len(data)} bytes to gs://{self.bucket}/{self.full_path}")
        return Task(self, self._ref.put(data, upload_metadata))

    def put_blob(self, blob: Blob, metadata: Optional[SettableMetadata] = None) -> Task:
        """
        Start uploading an opaque binary blob (binary stream or buffer).

        Raises:
            StorageUnsupported: If the backend lacks Capability.BLOB_UPLOAD
                (raised before any backend call)
        """
        if Capability.BLOB_UPLOAD not in self.storage.capabilities:
            raise StorageUnsupported("put_blob() is not supported by this storage backend", path=self.full_path)

        content = blob_bytes(blob)
        upload_metadata = settable_to_upload_metadata(metadata, md5_hash=md5_base64(content))
        logger.debug(f"Uploading {len(content)}-byte blob to gs://{self.bucket}/{self.full_path}")
        return Task(self, self._ref.put_blob(content, upload_metadata))

    def put_string(
        self,
        data: str,
        format: PutStringFormat = PutStringFormat.RAW,
        metadata: Optional[SettableMetadata] = None,
    ) -> Task:
        """
        Start uploading a string to this location.

        Formats:
        - RAW: the text is stored UTF-8 encoded
        - BASE64 / BASE64_URL: the text is decoded before storing
        - DATA_URL: the text must be a data URL; its MIME type becomes the
          content type unless metadata sets one

        The hash is computed over the text's code units, not the decoded bytes.

        Raises:
            ValueError: If the text is not valid for the format
        """
        format = PutStringFormat(format)
        if format is PutStringFormat.DATA_URL and (metadata is None or metadata.content_type is None):
            content_type = data_url_content_type(data)
            if content_type:
                base = metadata or SettableMetadata()
                metadata = base.model_copy(update={"content_type": content_type})

        upload_metadata = settable_to_upload_metadata(metadata, md5_hash=md5_base64(code_units(data)))
        return Task(self, self._ref.put_string(data, format_to_backend(format), upload_metadata))

    # Local file transfers are not offered by any backend; reject them explicitly

    def put_file(self, path: Union[str, PathLike], metadata: Optional[SettableMetadata] = None) -> Task:
        """
        Upload a local file.

        Raises:
            StorageUnsupported: Always, before any backend call
        """
        raise StorageUnsupported("put_file() is not supported; read the file and use put_data()", path=self.full_path)

    def write_to_file(self, path: Union[str, PathLike]) -> Task:
        """
        Download the object to a local file.

        Raises:
            StorageUnsupported: Always, before any backend call
        """
        raise StorageUnsupported("write_to_file() is not supported; use get_data()", path=self.full_path)

"""
Storage root.

Storage owns the injected backend, the HTTP client used for plain downloads,
and per-instance defaults. It is the entry point for obtaining References.
"""
from __future__ import annotations

import logging
from typing import FrozenSet, Optional

import httpx

from ..settings import Settings
from .base import Capability, StorageBackend
from .paths import is_absolute_url
from .reference import Reference

__all__ = ["Storage", "make_backend"]

logger = logging.getLogger(__name__)

DEFAULT_MAX_DOWNLOAD_SIZE = 10 * 1024 * 1024


class Storage:
    """
    Entry point for storage References.

    Args:
        backend: Backend implementation (see make_backend)
        http: Client for download-URL fetches; one is created (and owned) when omitted
        max_download_size: Default limit for Reference.get_data()
    """

    def __init__(
        self,
        backend: StorageBackend,
        *,
        http: Optional[httpx.AsyncClient] = None,
        max_download_size: int = DEFAULT_MAX_DOWNLOAD_SIZE,
    ) -> None:
        self.backend = backend
        self.max_download_size = max_download_size
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(follow_redirects=True)

    @classmethod
    def from_settings(cls, settings: Settings, *, http: Optional[httpx.AsyncClient] = None) -> Storage:
        """Build a Storage with the backend selected by settings.backend."""
        backend = make_backend(settings)
        owns_http = http is None
        if http is None:
            # The in-memory backend serves its own download URLs
            transport = backend.transport() if settings.backend == "memory" else None
            http = httpx.AsyncClient(timeout=settings.http_timeout_s, follow_redirects=True, transport=transport)
        storage = cls(backend, http=http, max_download_size=settings.max_download_size)
        storage._owns_http = owns_http
        return storage

    @property
    def bucket(self) -> str:
        return self.backend.bucket

    @property
    def capabilities(self) -> FrozenSet[Capability]:
        return self.backend.capabilities

    def ref(self, path: Optional[str] = None) -> Reference:
        """
        Reference for a path relative to the bucket root, or an absolute
        gs:// / http(s):// object URL. None or "" is the root.
        """
        return Reference(self, path)

    def ref_from_url(self, url: str) -> Reference:
        """
        Reference for an absolute object URL.

        Raises:
            ValueError: If url does not start with gs://, http:// or https://
        """
        if not is_absolute_url(url):
            raise ValueError(f"Expected a gs:// or http(s):// URL, got {url!r}")
        return Reference(self, url)

    async def aclose(self) -> None:
        """Close the backend and, if owned, the download client."""
        await self.backend.aclose()
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> Storage:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


def make_backend(settings: Settings) -> StorageBackend:
    """
    Create a storage backend based on settings.backend.

    Args:
        settings: Storage configuration

    Returns:
        StorageBackend implementation
            - "rest": FirebaseRestBackend (Firebase Storage REST API)
            - "memory": InMemoryStorageBackend (process-local, for development)

    Raises:
        ValueError: If settings.backend names an unknown implementation
    """
    logger.debug(f"Creating {settings.backend} storage backend for bucket {settings.storage_bucket}")

    if settings.backend == "rest":
        from .rest_backend import FirebaseRestBackend
        return FirebaseRestBackend(settings)
    elif settings.backend == "memory":
        from .fakes.fake_backend import InMemoryStorageBackend
        return InMemoryStorageBackend(bucket=settings.storage_bucket)
    else:
        raise ValueError(f"Unknown storage backend: {settings.backend}. Supported values: rest, memory")

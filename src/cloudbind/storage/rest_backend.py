"""
Firebase Storage REST backend.

Talks to the Firebase Storage JSON API (/v0/b/{bucket}/o/...) over httpx with
tenacity retries on timeouts, and maps HTTP failures onto StorageError
subclasses.
"""
from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..settings import Settings
from .base import BlobBackendRef, Capability, StorageBackend
from .errors import StorageNotFound, StorageUnavailable, StorageUnknown, error_for_status
from .formats import decode_string, format_from_token
from .paths import is_listable_name, normalize_path, parse_object_url
from .upload import PendingUpload

__all__ = ["FirebaseRestBackend", "RestRef"]

logger = logging.getLogger(__name__)

# Retried transparently; anything else surfaces on the first failure
RETRYABLE_ERRORS = (httpx.ConnectTimeout, httpx.ReadTimeout, httpx.TimeoutException)


def _error_message(response: httpx.Response) -> str:
    """Extract the message from a {"error": {"message": ...}} body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message") or response.reason_phrase)
    return response.reason_phrase


def _json_body(response: httpx.Response, path: Optional[str]) -> Dict[str, Any]:
    """
    JSON object from a successful response.

    Raises:
        StorageUnknown: If the body is not JSON or not an object
    """
    try:
        body = response.json()
    except ValueError as e:
        raise StorageUnknown(f"Invalid JSON in storage response: {e}", path=path) from e
    if not isinstance(body, dict):
        raise StorageUnknown("Invalid storage response: expected a JSON object", path=path)
    return body


def _to_request_metadata(metadata: Dict[str, Any]) -> Dict[str, Any]:
    # The REST API names custom metadata "metadata"
    payload = {key: value for key, value in metadata.items() if key != "customMetadata"}
    if "customMetadata" in metadata:
        payload["metadata"] = metadata["customMetadata"]
    return payload


class RestRef(BlobBackendRef):
    """One object path in a bucket served by FirebaseRestBackend."""

    def __init__(self, backend: FirebaseRestBackend, bucket: str, full_path: str) -> None:
        self._backend = backend
        self.bucket = bucket
        self.full_path = full_path

    @property
    def _object_url(self) -> str:
        return f"{self._backend.host}/v0/b/{quote(self.bucket, safe='')}/o/{quote(self.full_path, safe='')}"

    @property
    def _bucket_url(self) -> str:
        return f"{self._backend.host}/v0/b/{quote(self.bucket, safe='')}/o"

    async def delete(self) -> None:
        await self._backend._request("DELETE", self._object_url, path=self.full_path)

    async def get_download_url(self) -> str:
        metadata = await self.get_metadata()
        tokens = metadata.get("downloadTokens")
        if not tokens:
            raise StorageNotFound(
                f"Object 'gs://{self.bucket}/{self.full_path}' has no download token.",
                code="no-download-url",
                path=self.full_path,
            )
        token = tokens.split(",")[0]
        return f"{self._object_url}?alt=media&token={quote(token, safe='')}"

    async def get_metadata(self) -> Dict[str, Any]:
        response = await self._backend._request("GET", self._object_url, path=self.full_path)
        return _json_body(response, self.full_path)

    async def list(self, options: Dict[str, Any]) -> Dict[str, Any]:
        params: Dict[str, Any] = {"delimiter": "/"}
        if self.full_path:
            params["prefix"] = f"{self.full_path}/"
        if options.get("maxResults"):
            params["maxResults"] = options["maxResults"]
        if options.get("pageToken"):
            params["pageToken"] = options["pageToken"]

        response = await self._backend._request("GET", self._bucket_url, params=params, path=self.full_path)
        body = _json_body(response, self.full_path)

        try:
            names = [item["name"] for item in body.get("items", [])]
            prefixes = [prefix.rstrip("/") for prefix in body.get("prefixes", [])]
        except (KeyError, TypeError, AttributeError) as e:
            raise StorageUnknown(f"Invalid list response: {e!r}", path=self.full_path) from e

        result: Dict[str, Any] = {
            "items": [name for name in names if is_listable_name(name)],
            "prefixes": prefixes,
        }
        if body.get("nextPageToken"):
            result["nextPageToken"] = body["nextPageToken"]
        return result

    async def list_all(self) -> Dict[str, Any]:
        items: List[str] = []
        prefixes: List[str] = []
        options: Dict[str, Any] = {"maxResults": self._backend.list_page_size}
        while True:
            page = await self.list(options)
            items.extend(page["items"])
            prefixes.extend(page["prefixes"])
            token = page.get("nextPageToken")
            if not token:
                return {"items": items, "prefixes": prefixes}
            options = {"maxResults": self._backend.list_page_size, "pageToken": token}

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
        response = await self._backend._request(
            "PATCH", self._object_url, json=_to_request_metadata(metadata), path=self.full_path
        )
        return _json_body(response, self.full_path)


class FirebaseRestBackend(StorageBackend):
    """
    Storage backend for the Firebase Storage REST API.

    Uploads are sent as a single multipart request, so pause/resume is not
    offered. An httpx.AsyncClient may be injected (e.g. with a MockTransport);
    otherwise one is created from settings and closed by aclose().
    """

    capabilities = frozenset({Capability.BLOB_UPLOAD})

    # Backoff between timed-out attempts
    retry_wait = wait_exponential(multiplier=1, min=1, max=10)

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None) -> None:
        self.bucket = settings.storage_bucket
        self.host = settings.storage_host.rstrip("/")
        self.list_page_size = settings.list_page_size
        self._retries = settings.http_retry
        self._owns_client = client is None

        headers = {"User-Agent": "cloudbind/0.1.0"}
        if settings.auth_token:
            headers["Authorization"] = f"Firebase {settings.auth_token}"
        if client is None:
            client = httpx.AsyncClient(timeout=settings.http_timeout_s, follow_redirects=True)
        client.headers.update(headers)
        self.client = client

    def ref(self, path: Optional[str]) -> RestRef:
        return RestRef(self, self.bucket, normalize_path(path))

    def ref_from_url(self, url: str) -> RestRef:
        parsed = parse_object_url(url)
        return RestRef(self, parsed.bucket, parsed.path)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _request(self, method: str, url: str, *, path: Optional[str] = None, **kwargs) -> httpx.Response:
        """
        Send a request, retrying timeouts up to settings.http_retry times.

        Raises:
            StorageError: Mapped from the HTTP status of a failed response
            StorageUnavailable: On network failure (after retries)
        """
        logger.debug(f"{method} {url}")
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._retries + 1),
                wait=self.retry_wait,
                retry=retry_if_exception_type(RETRYABLE_ERRORS),
                reraise=True,
            ):
                with attempt:
                    response = await self.client.request(method, url, **kwargs)
                    response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise error_for_status(e.response.status_code, _error_message(e.response), path=path) from e
        except httpx.RequestError as e:
            raise StorageUnavailable(f"Network error on {method} {url}: {e}", path=path) from e
        return response

    def _start_upload(self, ref: RestRef, data: bytes, metadata: Dict[str, Any]) -> PendingUpload:
        async def transfer(upload: PendingUpload) -> Dict[str, Any]:
            await upload.checkpoint(0)
            resource = _to_request_metadata(metadata)
            resource["name"] = ref.full_path
            resource.setdefault("contentType", "application/octet-stream")
            body, content_type = _multipart_body(resource, data)
            response = await self._request(
                "POST",
                ref._bucket_url,
                params={"name": ref.full_path},
                content=body,
                headers={"Content-Type": content_type, "X-Goog-Upload-Protocol": "multipart"},
                path=ref.full_path,
            )
            await upload.checkpoint(len(data))
            return _json_body(response, ref.full_path)

        return PendingUpload(transfer, total_bytes=len(data), path=ref.full_path)


def _multipart_body(resource: Dict[str, Any], data: bytes) -> Tuple[bytes, str]:
    """multipart/related body: JSON resource part followed by the data part."""
    boundary = uuid.uuid4().hex
    parts = [
        f"--{boundary}\r\n"
        "Content-Type: application/json; charset=utf-8\r\n\r\n"
        f"{json.dumps(resource)}\r\n"
        f"--{boundary}\r\n"
        f"Content-Type: {resource['contentType']}\r\n\r\n".encode("utf-8"),
        data,
        f"\r\n--{boundary}--".encode("utf-8"),
    ]
    return b"".join(parts), f"multipart/related; boundary={boundary}"


"""
Translation between public models and backend-native dicts.

Pure functions with no I/O. Unset public fields are omitted from backend
payloads; backend fields without a public counterpart are dropped.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from .formats import FORMAT_TOKENS, PutStringFormat
from .models import FullMetadata, ListOptions, ListResult, SettableMetadata
from .paths import last_component

if TYPE_CHECKING:
    from .client import Storage

__all__ = [
    "settable_to_upload_metadata",
    "settable_to_update_metadata",
    "backend_to_full_metadata",
    "list_options_to_backend",
    "backend_to_list_result",
    "format_to_backend",
]

# Public field name -> backend key
_SETTABLE_FIELDS = {
    "cache_control": "cacheControl",
    "content_disposition": "contentDisposition",
    "content_encoding": "contentEncoding",
    "content_language": "contentLanguage",
    "content_type": "contentType",
    "custom_metadata": "customMetadata",
}

_FULL_ONLY_FIELDS = {
    "bucket": "bucket",
    "generation": "generation",
    "metageneration": "metageneration",
    "size": "size",
    "md5_hash": "md5Hash",
    "time_created": "timeCreated",
    "updated": "updated",
}


def settable_to_update_metadata(metadata: Optional[SettableMetadata]) -> Dict[str, Any]:
    """Backend payload for update_metadata(); only fields the caller set."""
    if metadata is None:
        return {}
    payload: Dict[str, Any] = {}
    for field_name, key in _SETTABLE_FIELDS.items():
        value = getattr(metadata, field_name)
        if value is not None:
            payload[key] = dict(value) if field_name == "custom_metadata" else value
    return payload


def settable_to_upload_metadata(metadata: Optional[SettableMetadata], *, md5_hash: str) -> Dict[str, Any]:
    """
    Backend upload metadata with the locally computed hash injected.

    Args:
        metadata: Caller metadata, may be None
        md5_hash: Base64 MD5 digest of the upload content

    Returns:
        Backend metadata dict; "md5Hash" always present
    """
    payload = settable_to_update_metadata(metadata)
    payload["md5Hash"] = md5_hash
    return payload


def backend_to_full_metadata(raw: Dict[str, Any]) -> FullMetadata:
    """
    Public read metadata from a backend metadata dict.

    Accepts both the SDK form ("fullPath", "customMetadata") and the REST form
    ("name" holding the full path, "metadata" holding custom fields, "size"
    as a string).
    """
    full_path = raw.get("fullPath")
    if full_path is None:
        full_path = raw.get("name", "")

    values: Dict[str, Any] = {
        "full_path": full_path,
        "name": last_component(full_path),
    }
    for field_name, key in {**_SETTABLE_FIELDS, **_FULL_ONLY_FIELDS}.items():
        value = raw.get(key)
        if value is not None:
            values[field_name] = value

    if "custom_metadata" not in values and raw.get("metadata") is not None:
        values["custom_metadata"] = raw["metadata"]
    if "size" in values:
        values["size"] = int(values["size"])
    for key in ("generation", "metageneration"):
        if key in values:
            values[key] = str(values[key])

    return FullMetadata(**values)


def list_options_to_backend(options: Optional[ListOptions]) -> Dict[str, Any]:
    """Backend list options; unset fields omitted."""
    if options is None:
        return {}
    payload: Dict[str, Any] = {}
    if options.max_results is not None:
        payload["maxResults"] = options.max_results
    if options.page_token is not None:
        payload["pageToken"] = options.page_token
    return payload


def backend_to_list_result(storage: Storage, raw: Dict[str, Any], *, bucket: Optional[str] = None) -> ListResult:
    """
    Public ListResult with each item and prefix bound as a Reference on storage.

    Paths in a bucket other than the storage default are bound by gs:// URL.
    """
    def bind(path: str):
        if bucket and bucket != storage.bucket:
            return storage.ref(f"gs://{bucket}/{path}")
        return storage.ref(path)

    return ListResult(
        items=[bind(path) for path in raw.get("items", [])],
        prefixes=[bind(path) for path in raw.get("prefixes", [])],
        next_page_token=raw.get("nextPageToken") or None,
    )


def format_to_backend(format: PutStringFormat) -> str:
    """Backend token for a string upload format."""
    return FORMAT_TOKENS[PutStringFormat(format)]

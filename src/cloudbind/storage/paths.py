"""
Path and URL utilities for storage references.

Provides the absolute-URL test used to pick a Reference's binding mode,
slash-delimited path helpers, and tolerant parsing of gs:// and http(s)://
object URLs into bucket and path.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlsplit

__all__ = [
    "ABSOLUTE_URL_RE",
    "ParsedLocation",
    "is_absolute_url",
    "normalize_path",
    "parent_path",
    "child_path",
    "last_component",
    "is_listable_name",
    "parse_object_url",
]

ABSOLUTE_URL_RE = re.compile(r"^(?:gs|https?)://")

_API_VERSION_RE = re.compile(r"^v[A-Za-z0-9_]+$")

# Hosts that serve objects as /{bucket}/{path} without the /o/ marker
_CLOUD_STORAGE_HOSTS = ("storage.googleapis.com", "storage.cloud.google.com")


@dataclass(frozen=True)
class ParsedLocation:
    """
    Bucket and object path extracted from an object URL.

    Attributes:
        bucket: Bucket name (may be empty for a malformed URL)
        path: Normalized object path, "" for the bucket root
        original: Original URL string for error messages
    """
    bucket: str
    path: str
    original: str


def is_absolute_url(path: Optional[str]) -> bool:
    """True when path begins with gs://, http:// or https://."""
    return path is not None and ABSOLUTE_URL_RE.match(path) is not None


def normalize_path(path: Optional[str]) -> str:
    """
    Normalize a relative path: drop empty segments and surrounding slashes.

    None and "" both denote the namespace root.

    Examples:
        >>> normalize_path("/images//cat.png/")
        'images/cat.png'
    """
    if not path:
        return ""
    return "/".join(segment for segment in path.split("/") if segment)


def parent_path(path: str) -> Optional[str]:
    """Path of the parent folder, or None for the root."""
    if not path:
        return None
    index = path.rfind("/")
    if index == -1:
        return ""
    return path[:index]


def child_path(path: str, child: str) -> str:
    """Join a (possibly multi-segment) child path onto path."""
    child = normalize_path(child)
    if not path:
        return child
    if not child:
        return path
    return f"{path}/{child}"


def last_component(path: str) -> str:
    """Last segment of path; "" for the root."""
    index = path.rfind("/")
    return path if index == -1 else path[index + 1:]


def is_listable_name(name: str) -> bool:
    """
    True when an object name can appear in list results.

    The namespace forbids names that end with "/" or contain "//"; listing
    backends skip such objects.
    """
    return not name.endswith("/") and "//" not in name


def parse_object_url(url: str) -> ParsedLocation:
    """
    Parse an absolute object URL into bucket and path.

    Accepted forms:
    - gs://bucket/path/to/object
    - http(s)://host/v0/b/bucket/o/path%2Fto%2Fobject (REST API form)
    - http(s)://host/bucket/o/path/to/object
    - http(s)://storage.googleapis.com/bucket/path/to/object

    Parsing never fails: a URL that matches none of the forms yields the
    host as bucket and its path as object path, leaving rejection to the
    backend when an operation runs.

    Args:
        url: Absolute URL (see is_absolute_url)

    Returns:
        ParsedLocation with decoded, normalized path
    """
    parts = urlsplit(url)

    if parts.scheme == "gs":
        return ParsedLocation(bucket=parts.netloc, path=normalize_path(unquote(parts.path)), original=url)

    segments = [segment for segment in parts.path.split("/") if segment]

    if len(segments) >= 3 and _API_VERSION_RE.match(segments[0]) and segments[1] == "b":
        bucket = segments[2]
        rest = segments[4:] if len(segments) > 3 and segments[3] == "o" else segments[3:]
    elif len(segments) >= 2 and segments[1] == "o":
        bucket = segments[0]
        rest = segments[2:]
    elif parts.hostname in _CLOUD_STORAGE_HOSTS and segments:
        bucket = segments[0]
        rest = segments[1:]
    else:
        bucket = parts.hostname or ""
        rest = segments

    path = normalize_path("/".join(unquote(segment) for segment in rest))
    return ParsedLocation(bucket=unquote(bucket), path=path, original=url)

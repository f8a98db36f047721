"""
Public data models for storage references.

These Pydantic models are the caller-facing shapes of object metadata and list
options; backend-native shapes are plain dicts translated in translate.py.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..settings import MAX_LIST_PAGE_SIZE

if TYPE_CHECKING:
    from .reference import Reference

__all__ = ["SettableMetadata", "FullMetadata", "ListOptions", "ListResult"]


class SettableMetadata(BaseModel):
    """
    Writable subset of object metadata.

    Unset (None) fields are omitted from backend payloads. The content hash is
    never settable; it is computed locally on upload.
    """
    model_config = ConfigDict(frozen=True)

    cache_control: Optional[str] = Field(default=None, description="Cache-Control directive")
    content_disposition: Optional[str] = Field(default=None, description="Content-Disposition header")
    content_encoding: Optional[str] = Field(default=None, description="Content-Encoding header")
    content_language: Optional[str] = Field(default=None, description="Content-Language header")
    content_type: Optional[str] = Field(default=None, description="MIME type")
    custom_metadata: Optional[Dict[str, str]] = Field(default=None, description="Custom key/value pairs")


class FullMetadata(BaseModel):
    """Object metadata as reported by the backend."""
    model_config = ConfigDict(frozen=True)

    bucket: Optional[str] = None
    full_path: str
    name: str
    generation: Optional[str] = None
    metageneration: Optional[str] = None
    size: Optional[int] = Field(default=None, ge=0, description="Object size in bytes")
    md5_hash: Optional[str] = Field(default=None, description="Base64 MD5 digest")
    cache_control: Optional[str] = None
    content_disposition: Optional[str] = None
    content_encoding: Optional[str] = None
    content_language: Optional[str] = None
    content_type: Optional[str] = None
    custom_metadata: Optional[Dict[str, str]] = None
    time_created: Optional[datetime] = None
    updated: Optional[datetime] = None


class ListOptions(BaseModel):
    """Options for a single list() page."""
    model_config = ConfigDict(frozen=True)

    max_results: Optional[int] = Field(
        default=None, ge=1, le=MAX_LIST_PAGE_SIZE, description="Page size (backend default when unset)"
    )
    page_token: Optional[str] = Field(default=None, description="Opaque token from a previous page")


@dataclass(frozen=True)
class ListResult:
    """
    One page (or the aggregate of all pages) of a listing.

    Attributes:
        items: References to objects directly under the listed path
        prefixes: References to sub-folders (synthesized from "/" delimiters)
        next_page_token: Opaque token for the next page; None when exhausted
    """
    items: List[Reference] = field(default_factory=list)
    prefixes: List[Reference] = field(default_factory=list)
    next_page_token: Optional[str] = None

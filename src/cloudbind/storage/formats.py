"""
String upload formats.

Defines PutStringFormat, its backend string tokens, and the decoding rules a
backend applies before storing a string upload.
"""
from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import unquote_to_bytes

__all__ = [
    "PutStringFormat",
    "FORMAT_TOKENS",
    "format_from_token",
    "DecodedString",
    "decode_string",
    "data_url_content_type",
]


class PutStringFormat(str, Enum):
    """How the text passed to put_string() is encoded."""
    RAW = "raw"
    BASE64 = "base64"
    BASE64_URL = "base64Url"
    DATA_URL = "dataUrl"


# Backend tokens, in the spelling the storage SDKs use
FORMAT_TOKENS = {
    PutStringFormat.RAW: "raw",
    PutStringFormat.BASE64: "base64",
    PutStringFormat.BASE64_URL: "base64url",
    PutStringFormat.DATA_URL: "data_url",
}

_FORMATS_BY_TOKEN = {token: fmt for fmt, token in FORMAT_TOKENS.items()}

_DATA_URL_RE = re.compile(r"^data:([^,]*?),(.*)$", re.DOTALL)

_URL_SAFE_TO_STANDARD = str.maketrans("-_", "+/")


@dataclass(frozen=True)
class DecodedString:
    """Bytes to store for a string upload, plus the data URL's MIME type if any."""
    data: bytes
    content_type: Optional[str] = None


def _b64decode(text: str, *, url_safe: bool) -> bytes:
    forbidden = "+/" if url_safe else "-_"
    for char in forbidden:
        if char in text:
            alphabet = "base64url" if url_safe else "base64"
            raise ValueError(f"Invalid character {char!r} for {alphabet} string")

    # Padding is optional on input
    text = text.rstrip("=")
    text += "=" * (-len(text) % 4)
    if url_safe:
        text = text.translate(_URL_SAFE_TO_STANDARD)
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"Invalid base64 string: {e}") from e


def _parse_data_url(text: str) -> DecodedString:
    match = _DATA_URL_RE.match(text)
    if not match:
        raise ValueError("String is not a data URL (expected 'data:[<mediatype>][;base64],<data>')")

    header, payload = match.groups()
    params = header.split(";")
    is_base64 = params[-1] == "base64"
    if is_base64:
        params = params[:-1]
    content_type = ";".join(params) or None

    if is_base64:
        data = _b64decode(unquote_to_bytes(payload).decode("ascii", errors="strict"), url_safe=False)
    else:
        data = unquote_to_bytes(payload)
    return DecodedString(data=data, content_type=content_type)


def format_from_token(token: str) -> PutStringFormat:
    """
    Map a backend format token back to its PutStringFormat.

    Raises:
        ValueError: If the token is not a known format
    """
    try:
        return _FORMATS_BY_TOKEN[token]
    except KeyError:
        raise ValueError(f"Unknown string format: {token!r}") from None


def data_url_content_type(text: str) -> Optional[str]:
    """MIME type declared by a data URL, or None when it declares none."""
    return _parse_data_url(text).content_type


def decode_string(text: str, format: PutStringFormat) -> DecodedString:
    """
    Decode a put_string() payload into the bytes to store.

    Rules:
    - raw: UTF-8 encoding of the text
    - base64: standard alphabet, "-" and "_" rejected, padding optional
    - base64Url: URL-safe alphabet, "+" and "/" rejected, padding optional
    - dataUrl: "data:" URL; base64 or percent-encoded payload

    Raises:
        ValueError: If the text is not valid for the format
    """
    format = PutStringFormat(format)
    if format is PutStringFormat.RAW:
        return DecodedString(data=text.encode("utf-8"))
    if format is PutStringFormat.BASE64:
        return DecodedString(data=_b64decode(text, url_safe=False))
    if format is PutStringFormat.BASE64_URL:
        return DecodedString(data=_b64decode(text, url_safe=True))
    return _parse_data_url(text)

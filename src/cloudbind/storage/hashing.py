"""
Content hashing for uploads.

Every upload carries an MD5 digest computed locally before the call reaches
the backend, in the base64 form object metadata reports as md5Hash.
"""
from __future__ import annotations

import base64
import hashlib
from typing import IO, Union

__all__ = ["Blob", "md5_base64", "code_units", "blob_bytes"]

# Opaque binary source for put_blob(): a readable binary stream or any buffer
Blob = Union[IO[bytes], bytes, bytearray, memoryview]


def md5_base64(data: bytes) -> str:
    """Base64-encoded MD5 digest of data."""
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


def code_units(text: str) -> bytes:
    """
    The text's UTF-16 code units, each truncated to its low 8 bits.

    put_string() hashes these rather than the decoded payload, so the hash
    does not depend on the upload format. For ASCII text (every base64 and
    data URL string) this equals the ASCII encoding.
    """
    encoded = text.encode("utf-16-le")
    # Little-endian: the low byte of each code unit comes first
    return encoded[0::2]


def blob_bytes(blob: Blob) -> bytes:
    """
    Extract the bytes behind an opaque blob.

    Streams are read from their current position to the end and rewound
    afterwards when seekable, so the caller's stream is left where it was.
    Non-seekable streams (pipes, sockets) are consumed; callers must read a
    blob only once.

    Raises:
        TypeError: If blob is neither a buffer nor a readable binary stream
    """
    if isinstance(blob, (bytes, bytearray, memoryview)):
        return bytes(blob)

    read = getattr(blob, "read", None)
    if read is None:
        raise TypeError(f"Expected a binary stream or buffer, got {type(blob).__name__}")

    seekable = getattr(blob, "seekable", None)
    start = blob.tell() if seekable is not None and seekable() else None
    data = read()
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError("Blob stream must be opened in binary mode")
    if start is not None:
        blob.seek(start)
    return bytes(data)

"""
Tests for Reference construction, navigation and awaited operations.

Construction is checked against a Mock backend; operations run against the
in-memory backend from conftest.
"""
from __future__ import annotations

import base64
import hashlib
import io
from unittest.mock import Mock

import httpx
import pytest

from cloudbind.storage.client import Storage
from cloudbind.storage.errors import (
    StorageNotFound,
    StoragePermissionDenied,
    StorageUnavailable,
    StorageUnsupported,
)
from cloudbind.storage.formats import PutStringFormat
from cloudbind.storage.hashing import code_units, md5_base64
from cloudbind.storage.models import SettableMetadata
from cloudbind.storage.reference import Reference


class _Pipe(io.RawIOBase):
    """Readable, non-seekable binary stream."""

    def __init__(self, data: bytes):
        self._data = data

    def readable(self):
        return True

    def seekable(self):
        return False

    def readinto(self, buffer):
        n = min(len(buffer), len(self._data))
        buffer[:n] = self._data[:n]
        self._data = self._data[n:]
        return n


@pytest.fixture
def mock_backend():
    """Backend spy recording how References bind."""
    backend = Mock()
    backend.bucket = "test-bucket"
    backend.capabilities = frozenset()
    return backend


@pytest.fixture
def mock_storage(mock_backend):
    return Storage(mock_backend, http=Mock())


class TestReferenceBinding:
    """Test that the binding mode is chosen by inspecting the path."""

    def test_relative_path_binds_via_ref(self, mock_storage, mock_backend):
        """Test that a relative path uses backend.ref()."""
        Reference(mock_storage, "images/cat.png")
        mock_backend.ref.assert_called_once_with("images/cat.png")
        mock_backend.ref_from_url.assert_not_called()

    def test_none_binds_root(self, mock_storage, mock_backend):
        """Test that None is passed through as the namespace root."""
        Reference(mock_storage)
        mock_backend.ref.assert_called_once_with(None)

    @pytest.mark.parametrize("url", [
        "gs://test-bucket/a.txt",
        "http://localhost:9199/v0/b/test-bucket/o/a.txt",
        "https://host/bucket/o/obj.txt",
    ])
    def test_absolute_url_binds_via_ref_from_url(self, mock_storage, mock_backend, url):
        """Test that gs://, http:// and https:// paths use backend.ref_from_url()."""
        Reference(mock_storage, url)
        mock_backend.ref_from_url.assert_called_once_with(url)
        mock_backend.ref.assert_not_called()

    def test_construction_performs_no_io(self, mock_storage, mock_backend):
        """Test that building a Reference only binds the handle."""
        Reference(mock_storage, "a/b")
        handle = mock_backend.ref.return_value
        assert handle.method_calls == []

    def test_file_transfers_rejected_before_backend(self, mock_storage, mock_backend):
        """Test that put_file and write_to_file never reach the backend."""
        ref = Reference(mock_storage, "a.txt")
        with pytest.raises(StorageUnsupported):
            ref.put_file("/tmp/a.txt")
        with pytest.raises(StorageUnsupported):
            ref.write_to_file("/tmp/a.txt")
        assert mock_backend.ref.return_value.method_calls == []

    def test_put_blob_rejected_without_capability(self, mock_storage, mock_backend):
        """Test that put_blob is rejected synchronously when BLOB_UPLOAD is missing."""
        ref = Reference(mock_storage, "a.bin")
        with pytest.raises(StorageUnsupported, match="put_blob"):
            ref.put_blob(b"data")
        mock_backend.ref.return_value.put_blob.assert_not_called()


class TestReferenceNavigation:
    """Test identity and navigation properties."""

    def test_properties(self, storage):
        """Test bucket, full_path and name."""
        ref = storage.ref("images/cat.png")
        assert ref.bucket == "test-bucket"
        assert ref.full_path == "images/cat.png"
        assert ref.name == "cat.png"

    def test_parent_and_root(self, storage):
        """Test walking up to the root."""
        ref = storage.ref("a/b/c.txt")
        assert ref.parent == storage.ref("a/b")
        assert ref.parent.parent.parent == storage.ref()
        assert ref.root.parent is None
        assert ref.root.full_path == ""

    def test_child(self, storage):
        """Test descending one and several levels."""
        assert storage.ref("a").child("b/c").full_path == "a/b/c"
        assert storage.ref().child("x").full_path == "x"

    def test_navigation_stays_in_other_bucket(self, storage):
        """Test that parent, root and child of a non-default bucket keep that bucket."""
        ref = storage.ref("gs://other-bucket/a/b")

        child = ref.child("c")
        assert (child.bucket, child.full_path) == ("other-bucket", "a/b/c")
        assert (ref.parent.bucket, ref.parent.full_path) == ("other-bucket", "a")
        assert (ref.root.bucket, ref.root.full_path) == ("other-bucket", "")
        assert ref.root.parent is None
        assert child.parent == ref

    def test_url_and_path_references_are_equal(self, storage):
        """Test that the same object addressed two ways compares equal."""
        by_url = storage.ref("gs://test-bucket/images/cat.png")
        by_path = storage.ref("images/cat.png")
        assert by_url == by_path
        assert hash(by_url) == hash(by_path)
        assert len({by_url, by_path}) == 1

    def test_http_url_resolution(self, storage):
        """Test that an https://host/bucket/o/obj URL resolves bucket and path."""
        ref = storage.ref("https://host/bucket/o/obj.txt")
        assert ref.bucket == "bucket"
        assert ref.full_path == "obj.txt"

    def test_ref_from_url_requires_absolute_url(self, storage):
        """Test that Storage.ref_from_url rejects relative paths."""
        with pytest.raises(ValueError, match="Expected a gs://"):
            storage.ref_from_url("images/cat.png")


class TestReferenceOperations:
    """Test awaited operations against the in-memory backend."""

    @pytest.mark.asyncio
    async def test_put_data_then_metadata(self, storage):
        """Test that metadata after an upload reports size and the local hash."""
        data = b"\x89PNG fake image bytes"
        task = storage.ref("images/cat.png").put_data(data, SettableMetadata(content_type="image/png"))
        snapshot = await task

        assert snapshot.metadata.size == len(data)
        metadata = await storage.ref("images/cat.png").get_metadata()
        assert metadata.size == len(data)
        assert metadata.md5_hash == md5_base64(data)
        assert metadata.content_type == "image/png"
        assert metadata.full_path == "images/cat.png"
        assert metadata.name == "cat.png"

    @pytest.mark.asyncio
    async def test_put_string_hashes_code_units(self, storage, backend):
        """Test that put_string stores decoded bytes but hashes the text."""
        text = "aGVsbG8="
        await storage.ref("greeting.txt").put_string(text, PutStringFormat.BASE64)

        stored = backend._objects[("test-bucket", "greeting.txt")]
        assert stored.data == b"hello"
        assert stored.metadata["md5Hash"] == md5_base64(code_units(text))
        assert stored.metadata["md5Hash"] != md5_base64(b"hello")

    @pytest.mark.asyncio
    async def test_put_string_data_url_sets_content_type(self, storage):
        """Test that a data URL's MIME type becomes the content type."""
        snapshot = await storage.ref("note.txt").put_string(
            "data:text/plain;base64,aGk=", PutStringFormat.DATA_URL
        )
        assert snapshot.metadata.content_type == "text/plain"
        assert snapshot.metadata.size == 2

    @pytest.mark.asyncio
    async def test_put_string_explicit_content_type_wins(self, storage):
        """Test that caller metadata overrides the data URL's MIME type."""
        snapshot = await storage.ref("note.txt").put_string(
            "data:text/plain,hi", PutStringFormat.DATA_URL, SettableMetadata(content_type="text/markdown")
        )
        assert snapshot.metadata.content_type == "text/markdown"

    @pytest.mark.asyncio
    async def test_put_string_invalid_payload_raises_synchronously(self, storage):
        """Test that malformed string payloads fail before a Task exists."""
        with pytest.raises(ValueError):
            storage.ref("bad.txt").put_string("ab-d", PutStringFormat.BASE64)
        with pytest.raises(ValueError):
            storage.ref("bad.txt").put_string("!!!!", PutStringFormat.BASE64_URL)
        with pytest.raises(ValueError):
            storage.ref("bad.txt").put_string("not a data url", PutStringFormat.DATA_URL)

    @pytest.mark.asyncio
    async def test_put_blob_hashes_underlying_bytes(self, storage):
        """Test that a blob is hashed like the equivalent bytes."""
        snapshot = await storage.ref("blob.bin").put_blob(io.BytesIO(b"blob-bytes"))
        assert snapshot.metadata.md5_hash == md5_base64(b"blob-bytes")
        assert snapshot.metadata.size == len(b"blob-bytes")

    @pytest.mark.asyncio
    async def test_put_blob_non_seekable_stream(self, storage, backend):
        """Test that a pipe-like blob is stored in full and hashed over the stored bytes."""
        snapshot = await storage.ref("pipe.bin").put_blob(_Pipe(b"hello world"))

        stored = backend._objects[("test-bucket", "pipe.bin")]
        assert stored.data == b"hello world"
        assert snapshot.metadata.size == len(b"hello world")
        assert snapshot.metadata.md5_hash == md5_base64(b"hello world")

    @pytest.mark.asyncio
    async def test_get_data_within_limit(self, storage, backend):
        """Test downloading content within the size limit."""
        backend.seed("docs/a.txt", b"0123456789")
        assert await storage.ref("docs/a.txt").get_data(max_size=10) == b"0123456789"
        assert await storage.ref("docs/a.txt").get_data() == b"0123456789"

    @pytest.mark.asyncio
    async def test_get_data_over_limit_returns_none(self, storage, backend):
        """Test that an object larger than max_size is not downloaded."""
        backend.seed("docs/big.bin", b"x" * 20)
        assert await storage.ref("docs/big.bin").get_data(max_size=10) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_size", [0, -1])
    async def test_get_data_unbounded(self, storage, backend, max_size):
        """Test that a non-positive max_size downloads everything."""
        backend.seed("docs/big.bin", b"x" * 20)
        assert await storage.ref("docs/big.bin").get_data(max_size=max_size) == b"x" * 20

    @pytest.mark.asyncio
    async def test_get_data_uses_storage_default_limit(self, backend):
        """Test that max_size defaults to the storage's max_download_size."""
        small = Storage(backend, http=httpx.AsyncClient(transport=backend.transport()), max_download_size=5)
        backend.seed("six.bin", b"123456")
        assert await small.ref("six.bin").get_data() is None

    @pytest.mark.asyncio
    async def test_get_data_download_failure_maps_to_taxonomy(self, storage, backend):
        """Test that HTTP errors from the download map to StorageError classes."""
        backend.seed("docs/a.txt", b"abc")
        ref = storage.ref("docs/a.txt")
        url = await ref.get_download_url()
        # Revoke the token so the download itself is rejected
        backend._objects[("test-bucket", "docs/a.txt")].metadata["downloadTokens"] = "other"
        async def stale_url():
            return url

        ref._ref.get_download_url = stale_url
        with pytest.raises(StoragePermissionDenied):
            await ref.get_data(max_size=0)

    @pytest.mark.asyncio
    async def test_download_url(self, storage, backend):
        """Test that download URLs embed bucket, encoded path and token."""
        backend.seed("images/cat.png", b"meow")
        url = await storage.ref("images/cat.png").get_download_url()
        assert url.startswith("https://memory.storage.invalid/v0/b/test-bucket/o/images%2Fcat.png?alt=media&token=")

    @pytest.mark.asyncio
    async def test_delete(self, storage, backend):
        """Test deleting an object and deleting it again."""
        backend.seed("tmp/x", b"x")
        ref = storage.ref("tmp/x")
        await ref.delete()
        with pytest.raises(StorageNotFound) as exc_info:
            await ref.delete()
        assert exc_info.value.code == "object-not-found"
        assert exc_info.value.path == "tmp/x"

    @pytest.mark.asyncio
    async def test_permission_denied(self, storage, backend):
        """Test that denied prefixes raise StoragePermissionDenied."""
        backend.seed("private/key.pem", b"secret")
        backend.deny("private")
        with pytest.raises(StoragePermissionDenied):
            await storage.ref("private/key.pem").get_metadata()

    @pytest.mark.asyncio
    async def test_injected_failure(self, storage, backend):
        """Test that injected backend failures surface unchanged."""
        backend.seed("a.txt", b"a")
        backend.fail_next(StorageUnavailable("backend down"))
        with pytest.raises(StorageUnavailable, match="backend down"):
            await storage.ref("a.txt").get_metadata()
        assert (await storage.ref("a.txt").get_metadata()).size == 1

    @pytest.mark.asyncio
    async def test_update_metadata(self, storage, backend):
        """Test that only set fields change and custom metadata is merged."""
        backend.seed("a.txt", b"a", contentType="text/plain", customMetadata={"keep": "1"})
        updated = await storage.ref("a.txt").update_metadata(
            SettableMetadata(cache_control="no-cache", custom_metadata={"added": "2"})
        )
        assert updated.cache_control == "no-cache"
        assert updated.content_type == "text/plain"
        assert updated.custom_metadata == {"keep": "1", "added": "2"}
        assert updated.metageneration == "2"

    @pytest.mark.asyncio
    async def test_md5_matches_hashlib(self, storage):
        """Test the stored hash against hashlib directly."""
        data = b"hash me"
        snapshot = await storage.ref("h.bin").put_data(data)
        assert snapshot.metadata.md5_hash == base64.b64encode(hashlib.md5(data).digest()).decode("ascii")

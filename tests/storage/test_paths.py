"""
Tests for path and object URL utilities.
"""
from __future__ import annotations

import pytest

from cloudbind.storage.paths import (
    child_path,
    is_absolute_url,
    is_listable_name,
    last_component,
    normalize_path,
    parent_path,
    parse_object_url,
)


class TestIsAbsoluteURL:
    """Test the binding-mode check."""

    @pytest.mark.parametrize("path", [
        "gs://bucket/a.txt",
        "http://localhost:9199/v0/b/bucket/o/a.txt",
        "https://host/bucket/o/obj.txt",
    ])
    def test_absolute(self, path):
        """Test that gs://, http:// and https:// prefixes are absolute."""
        assert is_absolute_url(path)

    @pytest.mark.parametrize("path", [None, "", "images/cat.png", "/images", "gs:/bucket", "ftp://x/y", "httpsx://a"])
    def test_relative(self, path):
        """Test that everything else binds relative to the root."""
        assert not is_absolute_url(path)


class TestPathHelpers:
    """Test normalize/parent/child/last_component."""

    def test_normalize_drops_empty_segments(self):
        """Test that duplicate and surrounding slashes are removed."""
        assert normalize_path("/images//cat.png/") == "images/cat.png"
        assert normalize_path(None) == ""
        assert normalize_path("/") == ""

    def test_parent(self):
        """Test parent paths at each depth."""
        assert parent_path("a/b/c") == "a/b"
        assert parent_path("a") == ""
        assert parent_path("") is None

    def test_child(self):
        """Test joining child paths."""
        assert child_path("a", "b/c") == "a/b/c"
        assert child_path("", "b") == "b"
        assert child_path("a", "/") == "a"

    def test_last_component(self):
        """Test name extraction."""
        assert last_component("images/cat.png") == "cat.png"
        assert last_component("top") == "top"
        assert last_component("") == ""

    @pytest.mark.parametrize("name,expected", [
        ("a/b.txt", True),
        ("folder/", False),
        ("a//b", False),
    ])
    def test_listable_names(self, name, expected):
        """Test names the namespace forbids from listings."""
        assert is_listable_name(name) is expected


class TestParseObjectURL:
    """Test parse_object_url with each accepted form."""

    def test_gs_url(self):
        """Test gs://bucket/path."""
        parsed = parse_object_url("gs://my-bucket/deep/nested/file.json")
        assert parsed.bucket == "my-bucket"
        assert parsed.path == "deep/nested/file.json"
        assert parsed.original == "gs://my-bucket/deep/nested/file.json"

    def test_gs_bucket_root(self):
        """Test gs://bucket with no object path."""
        parsed = parse_object_url("gs://my-bucket")
        assert parsed.bucket == "my-bucket"
        assert parsed.path == ""

    def test_rest_api_url(self):
        """Test the /v0/b/{bucket}/o/{encoded} form with a download token."""
        parsed = parse_object_url(
            "https://firebasestorage.googleapis.com/v0/b/app.appspot.com/o/images%2Fcat.png?alt=media&token=abc"
        )
        assert parsed.bucket == "app.appspot.com"
        assert parsed.path == "images/cat.png"

    def test_short_object_url(self):
        """Test the host/bucket/o/path form."""
        parsed = parse_object_url("https://host/bucket/o/obj.txt")
        assert parsed.bucket == "bucket"
        assert parsed.path == "obj.txt"

    def test_cloud_storage_host(self):
        """Test storage.googleapis.com/bucket/path."""
        parsed = parse_object_url("https://storage.googleapis.com/bucket/a/b.txt")
        assert parsed.bucket == "bucket"
        assert parsed.path == "a/b.txt"

    def test_unrecognized_url_does_not_fail(self):
        """Test that an unrecognized URL falls back to host and path."""
        parsed = parse_object_url("https://example.com/some/file")
        assert parsed.bucket == "example.com"
        assert parsed.path == "some/file"

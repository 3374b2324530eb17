"""Unit tests for utility functions."""

import hashlib
from datetime import datetime, timezone

import pytest

from pyneocities.utils import (
    calculate_sha1,
    format_size,
    is_safe_relative_path,
    join_remote_path,
    normalize_relative_path,
    parent_paths,
    parse_remote_timestamp,
)


class TestParseRemoteTimestamp:
    """Tests for parse_remote_timestamp function."""

    def test_rfc2822(self):
        """Test the format used by the list endpoint."""
        result = parse_remote_timestamp("Sat, 13 Feb 2016 03:04:00 -0000")
        assert result == datetime(2016, 2, 13, 3, 4, tzinfo=timezone.utc)

    def test_rfc2822_with_offset_converted_to_utc(self):
        result = parse_remote_timestamp("Sat, 13 Feb 2016 05:04:00 +0200")
        assert result == datetime(2016, 2, 13, 3, 4, tzinfo=timezone.utc)

    def test_iso_with_z(self):
        result = parse_remote_timestamp("2025-01-15T10:30:00Z")
        assert result == datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_naive_iso_is_utc(self):
        result = parse_remote_timestamp("2025-01-15T10:30:00")
        assert result is not None
        assert result.tzinfo is not None
        assert result.hour == 10

    @pytest.mark.parametrize("value", [None, "", "not a date"])
    def test_unparseable(self, value):
        assert parse_remote_timestamp(value) is None


class TestFormatSize:
    """Tests for format_size function."""

    def test_bytes(self):
        assert format_size(256) == "256 B"

    def test_kilobytes(self):
        assert format_size(1536) == "1.5 KB"

    def test_megabytes(self):
        assert format_size(5 * 1024 * 1024) == "5.0 MB"

    def test_gigabytes(self):
        assert format_size(2 * 1024 * 1024 * 1024) == "2.0 GB"


class TestCalculateSha1:
    """Tests for calculate_sha1 function."""

    def test_matches_hashlib(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_bytes(b"hello world")
        assert calculate_sha1(path) == hashlib.sha1(b"hello world").hexdigest()

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty"
        path.write_bytes(b"")
        assert calculate_sha1(path) == "da39a3ee5e6b4b0d3255bfef95601890afd80709"

    def test_large_file_spans_chunks(self, tmp_path):
        """Test that files larger than one read chunk hash correctly."""
        data = b"x" * (200 * 1024)
        path = tmp_path / "big.bin"
        path.write_bytes(data)
        assert calculate_sha1(path) == hashlib.sha1(data).hexdigest()


class TestPathHelpers:
    """Tests for relative path helpers."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("./docs/index.html", "docs/index.html"),
            ("docs\\index.html", "docs/index.html"),
            ("/images/", "images"),
            ("", ""),
        ],
    )
    def test_normalize_relative_path(self, raw, expected):
        assert normalize_relative_path(raw) == expected

    def test_join_remote_path(self):
        assert join_remote_path("images", "cat.png") == "/images/cat.png"
        assert join_remote_path("", "cat.png") == "/cat.png"
        assert join_remote_path("/a/", "/b/", "c.txt") == "/a/b/c.txt"

    @pytest.mark.parametrize(
        "path,safe",
        [
            ("index.html", True),
            ("dir/f.txt", True),
            ("../escape.txt", False),
            ("dir/../../escape.txt", False),
            ("/etc/passwd", False),
            ("dir\\f.txt", False),
            ("", False),
        ],
    )
    def test_is_safe_relative_path(self, path, safe):
        assert is_safe_relative_path(path) is safe

    def test_parent_paths(self):
        assert parent_paths("a/b/c.txt") == ["a/b", "a"]
        assert parent_paths("c.txt") == []

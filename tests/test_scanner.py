"""
Unit tests for src.core.scanner.

Tests cover:
- normalize_dir_key and canonical_key
- sorting, extension filter and the reserved .thumbs folder
- URL construction for files in nested directories
- BadPath for traversal, missing paths and files
- ScanFailure when the directory cannot be read
"""

import os

import pytest

from src.core.errors import BadPath, ScanFailure
from src.core.scanner import DirectoryListing, DirectoryScanner, FileEntry, normalize_dir_key


class TestNormalizeDirKey:
    @pytest.mark.parametrize("raw,expected", [
        ("", ""),
        (None, ""),
        ("/", ""),
        ("a", "a"),
        ("/a/b/", "a/b"),
        ("a//b/./c", "a/b/c"),
        ("a\\b", "a/b"),
        ("../x", "../x"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_dir_key(raw) == expected


class TestCanonicalKey:
    @pytest.mark.parametrize("raw,expected", [
        ("", ""),
        ("trips", "trips"),
        ("/trips//2024/", "trips/2024"),
        ("empty/../trips", "trips"),
        ("trips/2024/..", "trips"),
        ("trips/..", ""),
    ])
    def test_aliases_collapse(self, images_root, raw, expected):
        assert DirectoryScanner(images_root).canonical_key(raw) == expected

    def test_escape_is_bad_path(self, images_root):
        with pytest.raises(BadPath):
            DirectoryScanner(images_root).canonical_key("trips/../..")

    def test_alias_scan_uses_canonical_key(self, images_root):
        listing = DirectoryScanner(images_root).scan("empty/../trips/2024")
        assert listing.dir == "trips/2024"
        assert listing.files[0].url == "/images/trips/2024/y.webp"


class TestScan:
    """Tests for DirectoryScanner.scan."""

    def test_root_listing(self, images_root):
        listing = DirectoryScanner(images_root).scan("")

        assert listing.dir == ""
        assert listing.dirs == ("empty", "trips")
        assert [f.name for f in listing.files] == ["a.png", "b.jpg", "c.gif"]
        assert listing.total == 3

    def test_thumbs_folder_is_hidden(self, images_root):
        listing = DirectoryScanner(images_root).scan("")
        assert ".thumbs" not in listing.dirs

    def test_extension_filter_is_case_insensitive(self, images_root):
        listing = DirectoryScanner(images_root).scan("trips")
        assert [f.name for f in listing.files] == ["x.JPG"]
        assert listing.dirs == ("2024",)

    def test_names_sort_case_insensitively(self, tmp_path):
        for name in ("b.jpg", "A.jpg", "a.jpg", "C.png"):
            (tmp_path / name).write_bytes(b"")
        listing = DirectoryScanner(tmp_path).scan("")
        assert [f.name for f in listing.files] == ["A.jpg", "a.jpg", "b.jpg", "C.png"]

    def test_empty_directory(self, images_root):
        listing = DirectoryScanner(images_root).scan("empty")
        assert listing.dirs == ()
        assert listing.files == ()
        assert listing.total == 0

    def test_dir_key_is_normalized(self, images_root):
        listing = DirectoryScanner(images_root).scan("/trips//2024/")
        assert listing.dir == "trips/2024"
        assert [f.name for f in listing.files] == ["y.webp"]

    def test_urls_are_derived_from_path(self, images_root):
        listing = DirectoryScanner(images_root).scan("trips/2024")
        entry = listing.files[0]
        assert entry.url == "/images/trips/2024/y.webp"
        assert entry.thumb_url == "/api/thumb?dir=trips%2F2024&name=y.webp"

    def test_urls_quote_special_characters(self, tmp_path):
        (tmp_path / "my album").mkdir()
        (tmp_path / "my album" / "a b#1.jpg").write_bytes(b"")
        entry = DirectoryScanner(tmp_path).scan("my album").files[0]
        assert entry.url == "/images/my%20album/a%20b%231.jpg"
        assert entry.thumb_url == "/api/thumb?dir=my%20album&name=a%20b%231.jpg"

    @pytest.mark.parametrize("bad", ["..", "../..", "trips/../../etc", "/../outside"])
    def test_traversal_is_rejected(self, images_root, bad):
        with pytest.raises(BadPath):
            DirectoryScanner(images_root).scan(bad)

    def test_missing_directory_is_bad_path(self, images_root):
        with pytest.raises(BadPath):
            DirectoryScanner(images_root).scan("nope")

    def test_file_is_bad_path(self, images_root):
        with pytest.raises(BadPath):
            DirectoryScanner(images_root).scan("b.jpg")

    def test_read_error_is_scan_failure(self, images_root, monkeypatch):
        def deny(path):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr(os, "scandir", deny)
        with pytest.raises(ScanFailure, match="Permission denied"):
            DirectoryScanner(images_root).scan("trips")


class TestListingSerialization:
    def test_round_trip(self, images_root):
        listing = DirectoryScanner(images_root).scan("")
        data = listing.to_dict()

        assert data["total"] == 3
        assert data["allFiles"][0] == {
            "name": "a.png",
            "url": "/images/a.png",
            "thumbUrl": "/api/thumb?dir=&name=a.png",
        }
        assert DirectoryListing.from_dict(data) == listing

    def test_for_file_at_root(self):
        entry = FileEntry.for_file("", "p.jpg")
        assert entry.url == "/images/p.jpg"

"""
Unit tests for content type resolution.
"""

import mimetypes

import pytest

from staticserver.http.mime_types import (
    DEFAULT_MIME_TYPE,
    ContentTypeResolver,
    get_content_type,
)


class TestFallbackTable:
    """With the system database switched off, only the fallback table applies."""

    @pytest.fixture
    def resolver(self) -> ContentTypeResolver:
        return ContentTypeResolver(use_system_types=False)

    @pytest.mark.parametrize("name,expected", [
        ("index.html", "text/html"),
        ("index.htm", "text/html"),
        ("INDEX.HTML", "text/html"),
        ("notes.txt", "text/plain"),
        ("notes.TxT", "text/plain"),
        ("style.css", DEFAULT_MIME_TYPE),
        ("archive.tar.gz", DEFAULT_MIME_TYPE),
        ("README", DEFAULT_MIME_TYPE),
    ])
    def test_resolve(self, resolver: ContentTypeResolver, name: str, expected: str):
        assert resolver.resolve(name) == expected

    def test_accepts_paths(self, resolver: ContentTypeResolver, tmp_path):
        assert resolver.resolve(tmp_path / "a" / "page.html") == "text/html"


class TestSystemTypes:

    def test_system_database_consulted_first(self, monkeypatch):
        monkeypatch.setattr(
            mimetypes, "guess_type", lambda name, strict=True: ("application/x-custom", None)
        )
        assert ContentTypeResolver().resolve("page.html") == "application/x-custom"

    def test_falls_back_when_unknown(self, monkeypatch):
        monkeypatch.setattr(mimetypes, "guess_type", lambda name, strict=True: (None, None))

        resolver = ContentTypeResolver()
        assert resolver.resolve("page.htm") == "text/html"
        assert resolver.resolve("blob.zzz") == DEFAULT_MIME_TYPE

    def test_compressed_file_uses_compression_type(self):
        resolver = ContentTypeResolver()

        assert resolver.resolve("archive.tar.gz") == "application/gzip"
        assert resolver.resolve("report.csv.bz2") == "application/x-bzip2"

    def test_unknown_encoding_is_binary(self, monkeypatch):
        monkeypatch.setattr(
            mimetypes, "guess_type", lambda name, strict=True: ("text/plain", "zstd-ish")
        )
        assert ContentTypeResolver().resolve("notes.txt.zz") == DEFAULT_MIME_TYPE

    def test_common_types(self):
        assert get_content_type("index.html") == "text/html"
        assert get_content_type("notes.txt") == "text/plain"
        assert get_content_type("logo.png") == "image/png"

"""Tests for file reading through the cache."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

import pytest

from mdtransclude.core.cache import CacheEntry, FileCache, MemoryFileCache
from mdtransclude.core.exceptions import FileReadError
from mdtransclude.core.reader import read_file, read_text_file, strip_bom


class BrokenCache(FileCache):
    def get(self, path: str) -> Optional[CacheEntry]:
        raise RuntimeError("cache down")

    def set(self, path: str, content: str) -> None:
        raise RuntimeError("cache down")

    def clear(self) -> None:
        pass

    def stats(self) -> Dict[str, int]:
        return {"size": 0, "hits": 0, "misses": 0}


class TestReadTextFile:
    def test_reads_utf8(self, tmp_path: Path):
        target = tmp_path / "a.md"
        target.write_text("héllo", encoding="utf-8")
        assert read_text_file(str(target)) == "héllo"

    def test_strips_bom(self, tmp_path: Path):
        target = tmp_path / "bom.md"
        target.write_bytes(b"\xef\xbb\xbf# Title")
        assert read_text_file(str(target)) == "# Title"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileReadError) as exc_info:
            read_text_file(str(tmp_path / "nope.md"))
        assert exc_info.value.reason == "not_found"

    def test_directory(self, tmp_path: Path):
        with pytest.raises(FileReadError) as exc_info:
            read_text_file(str(tmp_path))
        assert exc_info.value.reason == "not_a_file"

    def test_too_large(self, tmp_path: Path):
        target = tmp_path / "big.md"
        target.write_text("x" * 100, encoding="utf-8")
        with pytest.raises(FileReadError) as exc_info:
            read_text_file(str(target), max_size=10)
        assert exc_info.value.reason == "too_large"
        assert read_text_file(str(target), max_size=100) == "x" * 100

    def test_binary(self, tmp_path: Path):
        target = tmp_path / "bin.md"
        target.write_bytes(b"abc\x00def")
        with pytest.raises(FileReadError) as exc_info:
            read_text_file(str(target))
        assert exc_info.value.reason == "binary"

    def test_invalid_utf8(self, tmp_path: Path):
        target = tmp_path / "latin.md"
        target.write_bytes(b"caf\xe9")
        with pytest.raises(FileReadError) as exc_info:
            read_text_file(str(target))
        assert exc_info.value.reason == "encoding"

    def test_error_is_an_oserror(self, tmp_path: Path):
        with pytest.raises(OSError):
            read_text_file(str(tmp_path / "nope.md"))


def test_strip_bom_only_leading():
    assert strip_bom("\ufeffa\ufeff") == "a\ufeff"
    assert strip_bom("plain") == "plain"


class TestReadFile:
    def test_populates_and_uses_cache(self, tmp_path: Path):
        target = tmp_path / "a.md"
        target.write_text("first", encoding="utf-8")
        cache = MemoryFileCache()

        assert read_file(str(target), cache) == "first"
        target.write_text("second", encoding="utf-8")
        assert read_file(str(target), cache) == "first"
        assert cache.stats()["hits"] == 1

    def test_without_cache_reads_disk(self, tmp_path: Path):
        target = tmp_path / "a.md"
        target.write_text("first", encoding="utf-8")
        read_file(str(target))
        target.write_text("second", encoding="utf-8")
        assert read_file(str(target)) == "second"

    def test_failing_cache_falls_back_to_disk(self, tmp_path: Path, caplog):
        target = tmp_path / "a.md"
        target.write_text("content", encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="mdtransclude"):
            assert read_file(str(target), BrokenCache()) == "content"

        assert any("cache" in record.getMessage() for record in caplog.records)

    def test_read_errors_are_not_cached(self, tmp_path: Path):
        cache = MemoryFileCache()
        with pytest.raises(FileReadError):
            read_file(str(tmp_path / "nope.md"), cache)
        assert len(cache) == 0

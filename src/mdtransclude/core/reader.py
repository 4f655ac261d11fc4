"""Read included files, going through the optional cache."""
from __future__ import annotations

import logging
import os
from typing import Optional

from .cache import FileCache
from .exceptions import FileReadError

logger = logging.getLogger(__name__)

_BOM = "\ufeff"
_BINARY_SNIFF_BYTES = 8000


def strip_bom(text: str) -> str:
    return text[1:] if text.startswith(_BOM) else text


def read_text_file(path: str, *, max_size: Optional[int] = None) -> str:
    """Read ``path`` as UTF-8 text with any BOM removed.

    Raises:
        FileReadError: if the path is not a regular file, is larger than
            ``max_size`` bytes, looks binary, cannot be decoded, or the OS
            refuses the read
    """
    try:
        if not os.path.isfile(path):
            if os.path.exists(path):
                raise FileReadError(f"Path is not a file: {path}", path=path, reason="not_a_file")
            raise FileReadError(f"File not found: {path}", path=path, reason="not_found")
        size = os.path.getsize(path)
        if max_size is not None and size > max_size:
            raise FileReadError(
                f"File too large ({size} bytes > {max_size} bytes): {path}",
                path=path,
                reason="too_large",
            )
        with open(path, "rb") as fh:
            data = fh.read()
    except PermissionError as exc:
        raise FileReadError(f"Permission denied: {path}", path=path, reason="permission") from exc
    except FileReadError:
        raise
    except OSError as exc:
        raise FileReadError(f"Failed to read {path}: {exc.strerror or exc}", path=path, reason="os_error") from exc

    if b"\0" in data[:_BINARY_SNIFF_BYTES]:
        raise FileReadError(f"Binary files are not supported: {path}", path=path, reason="binary")
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FileReadError(f"File is not valid UTF-8: {path}", path=path, reason="encoding") from exc
    return strip_bom(text)


def _cache_get(cache: FileCache, path: str) -> Optional[str]:
    try:
        entry = cache.get(path)
    except Exception as exc:
        logger.warning("File cache lookup failed for %s: %s", path, exc)
        return None
    return entry.content if entry is not None else None


def _cache_set(cache: FileCache, path: str, content: str) -> None:
    try:
        cache.set(path, content)
    except Exception as exc:
        logger.warning("File cache store failed for %s: %s", path, exc)


def read_file(path: str, cache: Optional[FileCache] = None, *, max_size: Optional[int] = None) -> str:
    """Read ``path`` through ``cache``; cache failures fall back to disk."""
    if cache is not None:
        cached = _cache_get(cache, path)
        if cached is not None:
            return cached

    content = read_text_file(path, max_size=max_size)

    if cache is not None:
        _cache_set(cache, path, content)
    return content


__all__ = ["strip_bom", "read_text_file", "read_file"]

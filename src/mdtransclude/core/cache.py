"""File content caches.

A cache is passed in explicitly through the options; there is no module-level
cache. Sharing one instance across threads is safe for
:class:`MemoryFileCache`, which serialises access with a lock.
"""
from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional

DEFAULT_MAX_ENTRY_SIZE = 1024 * 1024


@dataclass(frozen=True)
class CacheEntry:
    content: str
    size: int
    timestamp: float = field(default_factory=time.time)


class FileCache(ABC):
    """Capability interface consumed by the engine.

    Implementations must not raise from any method; the reader still guards
    calls and degrades to a direct read.
    """

    @abstractmethod
    def get(self, path: str) -> Optional[CacheEntry]:
        ...

    @abstractmethod
    def set(self, path: str, content: str) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    @abstractmethod
    def stats(self) -> Dict[str, int]:
        """Return ``{"size": entries, "hits": n, "misses": n}``."""
        ...

    def total_size(self) -> int:
        return 0

    def invalidate(self, path: str) -> None:
        """Drop one entry; a no-op unless overridden."""


class NoopFileCache(FileCache):
    """Cache that stores nothing."""

    def get(self, path: str) -> Optional[CacheEntry]:
        return None

    def set(self, path: str, content: str) -> None:
        pass

    def clear(self) -> None:
        pass

    def stats(self) -> Dict[str, int]:
        return {"size": 0, "hits": 0, "misses": 0}


class MemoryFileCache(FileCache):
    """In-memory cache with a per-entry byte ceiling.

    Content larger than ``max_entry_size`` UTF-8 bytes is silently not
    stored.
    """

    def __init__(self, max_entry_size: Optional[int] = DEFAULT_MAX_ENTRY_SIZE) -> None:
        self.max_entry_size = max_entry_size
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    def get(self, path: str) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                self._misses += 1
            else:
                self._hits += 1
            return entry

    def set(self, path: str, content: str) -> None:
        size = len(content.encode("utf-8"))
        if self.max_entry_size is not None and size > self.max_entry_size:
            return
        with self._lock:
            self._entries[path] = CacheEntry(content=content, size=size)

    def invalidate(self, path: str) -> None:
        with self._lock:
            self._entries.pop(path, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"size": len(self._entries), "hits": self._hits, "misses": self._misses}

    def total_size(self) -> int:
        with self._lock:
            return sum(entry.size for entry in self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._entries


__all__ = [
    "DEFAULT_MAX_ENTRY_SIZE",
    "CacheEntry",
    "FileCache",
    "NoopFileCache",
    "MemoryFileCache",
]

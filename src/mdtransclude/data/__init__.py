"""
Bundled data resources (default configuration and schemas).

Files are located with importlib.resources so they work from an installed
wheel as well as a source checkout.
"""

from __future__ import annotations

from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml


def get_data_path(subpackage: str, filename: str = "") -> Path:
    """
    Get absolute path to a data file or directory.

    Example:
        >>> get_data_path("config", "defaults.yaml")
        PosixPath('/path/to/mdtransclude/data/config/defaults.yaml')
    """
    pkg = resources.files("mdtransclude.data")
    base = Path(str(pkg / subpackage))
    return base / filename if filename else base


@lru_cache(maxsize=16)
def _read_yaml_cached(subpackage: str, filename: str) -> Any:
    path = get_data_path(subpackage, filename)
    return yaml.safe_load(path.read_text(encoding="utf-8"))


def read_yaml(subpackage: str, filename: str) -> Any:
    """Read and parse a bundled YAML file (parsed once per process)."""
    return _read_yaml_cached(subpackage, filename)


def clear_caches() -> None:
    """Clear read caches (useful for testing)."""
    _read_yaml_cached.cache_clear()


__all__ = ["get_data_path", "read_yaml", "clear_caches"]

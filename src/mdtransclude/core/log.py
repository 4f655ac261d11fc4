from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "mdtransclude"

_CONFIGURED_KEY: Optional[str] = None
_INSTALLED_HANDLER: Optional[logging.Handler] = None


def _level_from_name(name: Union[str, int]) -> int:
    if isinstance(name, int):
        return name
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(level: Union[str, int] = "WARNING", log_path: Optional[Union[str, Path]] = None) -> None:
    """Attach one handler to the ``mdtransclude`` logger.

    Logs go to ``log_path`` when given, otherwise to stderr (stdout carries
    document output). Idempotent per process: calling again with the same
    target only updates the level.
    """
    global _CONFIGURED_KEY, _INSTALLED_HANDLER

    if log_path is not None:
        resolved = Path(log_path).resolve()
        resolved.parent.mkdir(parents=True, exist_ok=True)
        key = str(resolved)
    else:
        resolved = None
        key = "<stderr>"

    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    pkg_logger.setLevel(_level_from_name(level))

    if _CONFIGURED_KEY == key and _INSTALLED_HANDLER is not None:
        _INSTALLED_HANDLER.setLevel(_level_from_name(level))
        return

    if _INSTALLED_HANDLER is not None:
        pkg_logger.removeHandler(_INSTALLED_HANDLER)
        _INSTALLED_HANDLER.close()
        _INSTALLED_HANDLER = None

    handler: logging.Handler
    if resolved is not None:
        handler = logging.FileHandler(resolved, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(_level_from_name(level))
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    pkg_logger.addHandler(handler)

    _INSTALLED_HANDLER = handler
    _CONFIGURED_KEY = key


def reset_logging_for_tests() -> None:
    """Test-only: remove the installed handler and reset the level."""
    global _CONFIGURED_KEY, _INSTALLED_HANDLER
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if _INSTALLED_HANDLER is not None:
        pkg_logger.removeHandler(_INSTALLED_HANDLER)
        _INSTALLED_HANDLER.close()
    pkg_logger.setLevel(logging.NOTSET)
    _CONFIGURED_KEY = None
    _INSTALLED_HANDLER = None


__all__ = ["PACKAGE_LOGGER", "configure_logging", "reset_logging_for_tests"]

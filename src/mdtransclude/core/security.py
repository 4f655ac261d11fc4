"""Path safety checks for transclusion references.

These helpers are pure: they inspect strings only and never touch the
filesystem. ``..`` segments in plain relative paths are accepted here and left
to :func:`is_within_root`, because ``sections/../other.md`` may still land
inside the root.
"""
from __future__ import annotations

import os
import re
from urllib.parse import unquote

from .errors import ErrorCode
from .exceptions import SecurityViolation

_WINDOWS_ABSOLUTE = re.compile(r"^[a-zA-Z]:[/\\]")
_UNC = re.compile(r"^[/\\]{2}")


def _is_absolute(path: str) -> bool:
    return path.startswith(("/", "\\")) or bool(_WINDOWS_ABSOLUTE.match(path))


def _has_parent_segment(path: str) -> bool:
    return ".." in re.split(r"[/\\]", path)


def validate_reference(path: str) -> bool:
    """Validate a (variable-substituted) reference path.

    Returns:
        True when the path is acceptable

    Raises:
        SecurityViolation: with ``NULL_BYTE``, ``ABSOLUTE_PATH`` or
            ``PATH_TRAVERSAL`` as the code
    """
    if "\0" in path:
        raise SecurityViolation(ErrorCode.NULL_BYTE, path)

    # UNC and Unix/Windows absolute forms.
    if _UNC.match(path) or _is_absolute(path):
        raise SecurityViolation(ErrorCode.ABSOLUTE_PATH, path)

    decoded = unquote(path)
    if decoded != path:
        if "\0" in decoded:
            raise SecurityViolation(ErrorCode.NULL_BYTE, path)
        if _UNC.match(decoded) or _is_absolute(decoded):
            raise SecurityViolation(ErrorCode.PATH_TRAVERSAL, path)
        # %2e%2e style parent segments
        if _has_parent_segment(decoded) and not _has_parent_segment(path):
            raise SecurityViolation(ErrorCode.PATH_TRAVERSAL, path)

    return True


def is_safe_reference(path: str) -> bool:
    """Boolean form of :func:`validate_reference`."""
    try:
        return validate_reference(path)
    except SecurityViolation:
        return False


def _normalize(path: str) -> str:
    return os.path.normcase(os.path.normpath(os.path.abspath(path)))


def is_within_root(resolved_path: str, root_path: str) -> bool:
    """Return True if ``resolved_path`` equals or is a descendant of ``root_path``.

    The comparison is separator-aware, so ``/docs-evil`` is not inside
    ``/docs``.
    """
    resolved = _normalize(resolved_path)
    root = _normalize(root_path)
    if resolved == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return resolved.startswith(prefix)


def ensure_within_root(resolved_path: str, root_path: str, reference: str = "") -> str:
    """Return ``resolved_path`` or raise ``SecurityViolation(OUTSIDE_BASE)``."""
    if not is_within_root(resolved_path, root_path):
        raise SecurityViolation(ErrorCode.OUTSIDE_BASE, reference or resolved_path)
    return resolved_path


__all__ = [
    "validate_reference",
    "is_safe_reference",
    "is_within_root",
    "ensure_within_root",
]

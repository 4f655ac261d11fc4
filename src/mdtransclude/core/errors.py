"""Error codes and accumulated processing errors.

Every failed reference produces one :class:`ProcessingError`. Errors are
collected in order during a call and attached to the result; they never abort
processing of sibling references.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Closed taxonomy of reference failures."""

    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    HEADING_NOT_FOUND = "HEADING_NOT_FOUND"
    READ_ERROR = "READ_ERROR"
    RESOLVE_ERROR = "RESOLVE_ERROR"
    CIRCULAR_REFERENCE = "CIRCULAR_REFERENCE"
    MAX_DEPTH_EXCEEDED = "MAX_DEPTH_EXCEEDED"

    # Security rejections (resolution failures)
    ABSOLUTE_PATH = "ABSOLUTE_PATH"
    PATH_TRAVERSAL = "PATH_TRAVERSAL"
    NULL_BYTE = "NULL_BYTE"
    OUTSIDE_BASE = "OUTSIDE_BASE"

    @property
    def is_security(self) -> bool:
        """True for codes raised by the security layer."""
        return self in _SECURITY_CODES


_SECURITY_CODES = frozenset(
    {
        ErrorCode.ABSOLUTE_PATH,
        ErrorCode.PATH_TRAVERSAL,
        ErrorCode.NULL_BYTE,
        ErrorCode.OUTSIDE_BASE,
    }
)


@dataclass(frozen=True)
class ProcessingError:
    """A single reference failure.

    Attributes:
        message: Human-readable description
        path: Failing target (reference text or resolved absolute path)
        code: Error code from :class:`ErrorCode`
        line: 1-based line of the reference inside its containing document
        source: Absolute path of the file containing the reference,
            ``None`` for the top-level document
    """

    message: str
    path: str
    code: ErrorCode
    line: Optional[int] = None
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "message": self.message,
            "path": self.path,
            "code": self.code.value,
            "line": self.line,
            "source": self.source,
        }

    def __str__(self) -> str:
        where = f" (line {self.line})" if self.line is not None else ""
        return f"[{self.code.value}] {self.message}{where}"


def error_marker(message: str) -> str:
    """Render the inline marker that replaces a failed reference.

    The marker is always a single line and never closes early, so downstream
    renderers can strip it as an HTML comment.
    """
    safe = " ".join(message.split())
    safe = safe.replace("-->", "-- >")
    return f"<!-- Error: {safe} -->"


__all__ = ["ErrorCode", "ProcessingError", "error_marker"]

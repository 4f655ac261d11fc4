from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, TYPE_CHECKING

from .errors import ErrorCode

if TYPE_CHECKING:
    from .errors import ProcessingError


class TranscludeError(Exception):
    """Base exception for mdtransclude."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class SecurityViolation(TranscludeError, ValueError):
    """Raised when a reference path is rejected by the security layer."""

    _MESSAGES = {
        ErrorCode.ABSOLUTE_PATH: "Absolute paths are not allowed",
        ErrorCode.PATH_TRAVERSAL: "Path traversal attempts are not allowed",
        ErrorCode.NULL_BYTE: "Null bytes in paths are not allowed",
        ErrorCode.OUTSIDE_BASE: "Path resolves outside of base directory",
    }

    def __init__(self, code: ErrorCode, path: str = "", *, message: str | None = None) -> None:
        text = message or self._MESSAGES.get(code, "Unsafe path")
        TranscludeError.__init__(self, text, context={"path": path, "code": code.value})
        ValueError.__init__(self, text)
        self.code = code
        self.path = path


class VariableSubstitutionError(TranscludeError):
    """Raised when ``{{name}}`` substitution fails (strict mode only surfaces it)."""

    def __init__(self, message: str, *, variable: str, reason: str) -> None:
        super().__init__(message, context={"variable": variable, "reason": reason})
        self.variable = variable
        self.reason = reason


class FileReadError(TranscludeError, OSError):
    """Raised when a resolved file cannot be read."""

    def __init__(self, message: str, *, path: str, reason: str) -> None:
        TranscludeError.__init__(self, message, context={"path": path, "reason": reason})
        OSError.__init__(self, message)
        self.path = path
        self.reason = reason

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ConfigError(TranscludeError):
    """Raised when configuration cannot be loaded or fails validation."""


class TransformerError(TranscludeError, RuntimeError):
    """Raised when a registered content transformer fails."""


class TransclusionFailed(TranscludeError):
    """Raised by callers that escalate accumulated errors (strict mode)."""

    def __init__(self, errors: List["ProcessingError"], *, message: Optional[str] = None) -> None:
        text = message or f"Transclusion finished with {len(errors)} error(s)"
        super().__init__(text, context={"errors": [e.to_dict() for e in errors]})
        self.errors = list(errors)


__all__ = [
    "TranscludeError",
    "SecurityViolation",
    "VariableSubstitutionError",
    "FileReadError",
    "ConfigError",
    "TransformerError",
    "TransclusionFailed",
]

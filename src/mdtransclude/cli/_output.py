"""CLI output formatting for text and JSON modes.

Document output is written by the command itself; this module only formats
diagnostics and JSON payloads.
"""
from __future__ import annotations

import json
import sys
from typing import Any, Dict, Iterable, Optional, TextIO

from mdtransclude.core.errors import ProcessingError


class OutputFormatter:
    """Unified output formatter for the command line."""

    def __init__(self, json_mode: bool = False, indent: int = 2, *, stdout: Optional[TextIO] = None, stderr: Optional[TextIO] = None):
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON; otherwise output text
            indent: JSON indentation level
            stdout: Stream for results (defaults to sys.stdout at call time)
            stderr: Stream for diagnostics (defaults to sys.stderr at call time)
        """
        self.json_mode = json_mode
        self.indent = indent
        self._stdout = stdout
        self._stderr = stderr

    @property
    def stdout(self) -> TextIO:
        return self._stdout or sys.stdout

    @property
    def stderr(self) -> TextIO:
        return self._stderr or sys.stderr

    def json_output(self, data: Any) -> None:
        """Output raw JSON data on stdout."""
        print(format_json(data, self.indent), file=self.stdout)

    def error(self, error: Exception, message: Optional[str] = None, *, error_code: str = "error") -> None:
        """Output a fatal error.

        Args:
            error: The exception that occurred
            message: Optional human-readable message (defaults to str(error))
            error_code: Error code for JSON output
        """
        msg = message or str(error)
        if self.json_mode:
            output: Dict[str, Any] = {"error": error_code, "message": msg}
            context = getattr(error, "context", None)
            if context:
                output["context"] = context
            print(format_json(output, self.indent), file=self.stderr)
        else:
            print(f"Error: {msg}", file=self.stderr)

    def processing_errors(self, errors: Iterable[ProcessingError], default_source: str = "<stdin>") -> None:
        """List accumulated reference errors on stderr (text mode only)."""
        if self.json_mode:
            return
        for err in errors:
            where = err.source or default_source
            if err.line is not None:
                where = f"{where}:{err.line}"
            print(f"{where}: [{err.code.value}] {err.message}", file=self.stderr)

    def text(self, message: str) -> None:
        """Output a diagnostic line on stderr (text mode only)."""
        if not self.json_mode:
            print(message, file=self.stderr)


def format_json(data: Any, indent: int = 2) -> str:
    return json.dumps(data, indent=indent, default=str)


__all__ = ["OutputFormatter", "format_json"]

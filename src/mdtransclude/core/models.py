"""Data model shared by the transclusion pipeline.

All objects here are created per top-level call and owned by it. The only
thing that may outlive a call is the injected file cache.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from .cache import DEFAULT_MAX_ENTRY_SIZE
from .errors import ErrorCode, ProcessingError
from .exceptions import TransclusionFailed

if TYPE_CHECKING:
    from .cache import FileCache
    from .transformers import ContentTransformer


DEFAULT_EXTENSIONS: Tuple[str, ...] = (".md", ".markdown")
DEFAULT_MAX_DEPTH = 10
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


@dataclass(frozen=True)
class ReferenceToken:
    """A ``![[path#heading:end]]`` marker found on a single line.

    ``start``/``end`` are offsets into the source line, so
    ``line[start:end] == original``.

    ``heading_range_end`` is ``None`` when the marker has no ``:``, and the
    empty string when the range is open-ended (``![[f#Start:]]``).
    """

    original: str
    path: str
    start: int
    end: int
    heading: Optional[str] = None
    heading_range_end: Optional[str] = None

    @property
    def is_range(self) -> bool:
        return self.heading_range_end is not None


@dataclass
class ResolutionResult:
    """Outcome of resolving one reference path."""

    original_reference: str
    absolute_path: str = ""
    exists: bool = False
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    tried: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.exists and not self.error


@dataclass
class ProcessedReference:
    """A token paired with its resolution and either content or an error."""

    token: ReferenceToken
    resolution: ResolutionResult
    content: Optional[str] = None
    error: Optional[ProcessingError] = None

    def __post_init__(self) -> None:
        if (self.content is None) == (self.error is None):
            raise ValueError("ProcessedReference needs exactly one of content or error")


@dataclass(frozen=True)
class TransclusionOptions:
    """Caller-supplied options, immutable for the duration of a call.

    Attributes:
        base_path: Root directory; no file outside it is ever read
        extensions: Ordered extensions tried for extension-less references
        variables: Flat ``{{name}}`` substitution map
        strict: Treat variable failures as errors and signal callers to
            escalate any accumulated error
        max_depth: Maximum recursion depth
        validate_only: Run the engine but emit no content
        strip_frontmatter: Strip YAML/TOML front matter from the top-level
            document and every included file
        cache: Optional shared file cache
        initial_file_path: Path of the top-level document, used to resolve
            its own relative references and to seed cycle detection
        transformers: Ordered content transformers run on included content
        max_file_size: Byte ceiling for a single included file (``None``
            disables the check)
        cache_enabled: Create a per-call memory cache when ``cache`` is unset
        cache_max_entry_size: Per-entry byte ceiling for that cache
        template_variables: ``{{name}}`` values substituted into emitted
            content; a value may be a callable evaluated per occurrence
    """

    base_path: str = "."
    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    variables: Dict[str, str] = field(default_factory=dict)
    strict: bool = False
    max_depth: int = DEFAULT_MAX_DEPTH
    validate_only: bool = False
    strip_frontmatter: bool = False
    cache: Optional["FileCache"] = None
    initial_file_path: Optional[str] = None
    transformers: Tuple["ContentTransformer", ...] = ()
    max_file_size: Optional[int] = DEFAULT_MAX_FILE_SIZE
    cache_enabled: bool = True
    cache_max_entry_size: Optional[int] = DEFAULT_MAX_ENTRY_SIZE
    template_variables: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Accept lists and mappings from callers and config.
        object.__setattr__(self, "extensions", tuple(self.extensions))
        object.__setattr__(self, "transformers", tuple(self.transformers))
        object.__setattr__(self, "variables", {str(k): str(v) for k, v in dict(self.variables).items()})
        object.__setattr__(
            self, "template_variables", {str(k): v for k, v in dict(self.template_variables).items()}
        )
        if self.max_depth < 0:
            raise ValueError("max_depth must be >= 0")

    def with_changes(self, **changes: Any) -> "TransclusionOptions":
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)


@dataclass
class TransclusionResult:
    """Result of a top-level call.

    ``processed_files`` holds absolute paths in first-seen order, without
    duplicates.
    """

    content: str
    errors: List[ProcessingError] = field(default_factory=list)
    processed_files: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        """Raise :class:`TransclusionFailed` if any error was recorded."""
        if self.errors:
            raise TransclusionFailed(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "errors": [e.to_dict() for e in self.errors],
            "processed_files": list(self.processed_files),
        }

    def summary(self) -> str:
        """Human-readable one-line summary."""
        return f"{len(self.processed_files)} file(s) processed, {len(self.errors)} error(s)"


__all__ = [
    "DEFAULT_EXTENSIONS",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_FILE_SIZE",
    "ReferenceToken",
    "ResolutionResult",
    "ProcessedReference",
    "TransclusionOptions",
    "TransclusionResult",
]

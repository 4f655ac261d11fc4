"""
mdtransclude - Markdown transclusion

Expands ``![[file#heading]]`` markers by inlining the referenced document (or
one of its sections), recursively, inside a base directory.
"""

__version__ = "1.0.0"

from mdtransclude.core import (  # noqa: E402
    ConfigError,
    ContentTransformer,
    ErrorCode,
    FileCache,
    FileReadError,
    FunctionTransformer,
    LineTranscluder,
    MemoryFileCache,
    NoopFileCache,
    ProcessingError,
    SecurityViolation,
    TranscludeError,
    TransclusionFailed,
    TransclusionOptions,
    TransclusionResult,
    TransclusionStream,
    TransformContext,
    iter_transclude,
    process_line,
    transclude,
    transclude_file,
    transclude_stream,
)
from mdtransclude.core.config import load_options  # noqa: E402

__all__ = [
    "__version__",
    "ConfigError",
    "ContentTransformer",
    "ErrorCode",
    "FileCache",
    "FileReadError",
    "FunctionTransformer",
    "LineTranscluder",
    "MemoryFileCache",
    "NoopFileCache",
    "ProcessingError",
    "SecurityViolation",
    "TranscludeError",
    "TransclusionFailed",
    "TransclusionOptions",
    "TransclusionResult",
    "TransclusionStream",
    "TransformContext",
    "iter_transclude",
    "load_options",
    "process_line",
    "transclude",
    "transclude_file",
    "transclude_stream",
]

"""Core transclusion pipeline: tokenizer, resolver, extractor, engine, stream."""
from __future__ import annotations

from .cache import CacheEntry, FileCache, MemoryFileCache, NoopFileCache
from .errors import ErrorCode, ProcessingError
from .exceptions import (
    ConfigError,
    FileReadError,
    SecurityViolation,
    TranscludeError,
    TransclusionFailed,
    TransformerError,
    VariableSubstitutionError,
)
from .models import (
    ReferenceToken,
    ResolutionResult,
    ProcessedReference,
    TransclusionOptions,
    TransclusionResult,
)
from .engine import LineTranscluder
from .stream import TransclusionStream
from .transclude import (
    iter_transclude,
    process_line,
    transclude,
    transclude_file,
    transclude_stream,
)
from .transformers import ContentTransformer, FunctionTransformer, TransformContext, TransformerPipeline

__all__ = [
    "CacheEntry",
    "FileCache",
    "MemoryFileCache",
    "NoopFileCache",
    "ErrorCode",
    "ProcessingError",
    "ConfigError",
    "FileReadError",
    "SecurityViolation",
    "TranscludeError",
    "TransclusionFailed",
    "TransformerError",
    "VariableSubstitutionError",
    "ReferenceToken",
    "ResolutionResult",
    "ProcessedReference",
    "TransclusionOptions",
    "TransclusionResult",
    "LineTranscluder",
    "TransclusionStream",
    "iter_transclude",
    "process_line",
    "transclude",
    "transclude_file",
    "transclude_stream",
    "ContentTransformer",
    "FunctionTransformer",
    "TransformContext",
    "TransformerPipeline",
]

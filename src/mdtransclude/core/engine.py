"""Recursive transclusion engine.

Expansion is a depth-first walk over the inclusion graph. Two structures are
tracked:

* ``processed_files``: every file opened during the call, for reporting only
* the ancestor chain: the files on the current branch, used for cycle
  detection; each branch gets its own copy, so a file included from two
  siblings (a diamond) is not a cycle

Every failure is local to the reference that caused it: it is recorded as a
:class:`ProcessingError` and the marker is replaced with an inline error
comment. Sibling references and later lines are still processed.
"""
from __future__ import annotations

import logging
import os
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .cache import FileCache, MemoryFileCache
from .errors import ErrorCode, ProcessingError, error_marker
from .exceptions import FileReadError
from .frontmatter import strip_frontmatter
from .headings import extract_section
from .models import ProcessedReference, ReferenceToken, ResolutionResult, TransclusionOptions
from .reader import read_file
from .resolver import PathResolver
from .tokenizer import FenceTracker, parse_references
from .transformers import TransformContext, TransformerPipeline

logger = logging.getLogger(__name__)

ErrorListener = Callable[[ProcessingError], None]
FileListener = Callable[[str], None]


def default_cache(options: TransclusionOptions) -> Optional[FileCache]:
    """Return the cache a call should use.

    An explicit cache always wins. Otherwise a fresh memory cache is created
    when caching is enabled and the call can re-read files at all.
    """
    if options.cache is not None:
        return options.cache
    if options.cache_enabled and not options.validate_only and options.max_depth > 1:
        return MemoryFileCache(options.cache_max_entry_size)
    return None


def compose_line(line: str, processed: Sequence[ProcessedReference]) -> str:
    """Splice replacements into ``line`` at each token's original offsets."""
    if not processed:
        return line
    parts: List[str] = []
    cursor = 0
    for ref in processed:
        parts.append(line[cursor : ref.token.start])
        if ref.error is not None:
            parts.append(error_marker(ref.error.message))
        else:
            parts.append(ref.content or "")
        cursor = ref.token.end
    parts.append(line[cursor:])
    return "".join(parts)


class LineTranscluder:
    """Expand transclusion markers line by line.

    One instance serves one top-level call (a string or a stream session).
    """

    def __init__(
        self,
        options: Optional[TransclusionOptions] = None,
        *,
        on_error: Optional[ErrorListener] = None,
        on_file: Optional[FileListener] = None,
    ) -> None:
        self.options = options or TransclusionOptions()
        self.resolver = PathResolver(self.options)
        self.pipeline = TransformerPipeline(self.options.transformers)
        self.cache = default_cache(self.options)
        self.errors: List[ProcessingError] = []
        self._processed: Dict[str, None] = {}
        self._error_listeners: List[ErrorListener] = [on_error] if on_error else []
        self._file_listeners: List[FileListener] = [on_file] if on_file else []

        initial = self.options.initial_file_path
        self.root_source: Optional[str] = os.path.abspath(initial) if initial else None
        self._root_chain: Tuple[str, ...] = (self.root_source,) if self.root_source else ()

    # ========== Reporting ==========

    @property
    def processed_files(self) -> List[str]:
        return list(self._processed)

    def add_error_listener(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    def add_file_listener(self, listener: FileListener) -> None:
        self._file_listeners.append(listener)

    def mark_processed(self, path: str) -> None:
        """Record ``path`` as opened; listeners hear about it once."""
        if path in self._processed:
            return
        self._processed[path] = None
        for listener in self._file_listeners:
            listener(path)

    def _record(
        self,
        message: str,
        path: str,
        code: ErrorCode,
        line: Optional[int],
        source: Optional[str],
    ) -> ProcessingError:
        error = ProcessingError(message=message, path=path, code=code, line=line, source=source)
        self.errors.append(error)
        logger.debug("Transclusion error %s", error)
        for listener in self._error_listeners:
            listener(error)
        return error

    def reset(self) -> None:
        self.errors = []
        self._processed = {}

    # ========== Expansion ==========

    def process_line(self, line: str, line_number: Optional[int] = None) -> str:
        """Expand one line of the top-level document."""
        return self.expand(
            line,
            depth=0,
            chain=self._root_chain,
            parent_path=self.root_source,
            line_number=line_number,
            source=self.root_source,
        )

    def expand(
        self,
        line: str,
        *,
        depth: int,
        chain: Tuple[str, ...],
        parent_path: Optional[str],
        line_number: Optional[int] = None,
        source: Optional[str] = None,
    ) -> str:
        """Expand every reference on ``line``.

        Args:
            line: One line of text without its newline
            depth: Recursion depth of this line (0 for the top-level document)
            chain: Absolute paths of the ancestors of this line
            parent_path: File containing ``line``, for relative resolution
            line_number: 1-based line number inside that file
            source: File reported as the error source
        """
        tokens = parse_references(line)
        if not tokens:
            return line

        if depth >= self.options.max_depth:
            processed = [self._depth_exceeded(t, line_number, source) for t in tokens]
        else:
            processed = [
                self._process_reference(t, depth, chain, parent_path, line_number, source)
                for t in tokens
            ]
        return compose_line(line, processed)

    def _depth_exceeded(
        self, token: ReferenceToken, line_number: Optional[int], source: Optional[str]
    ) -> ProcessedReference:
        error = self._record(
            f"Maximum transclusion depth ({self.options.max_depth}) exceeded: {token.path}",
            token.path,
            ErrorCode.MAX_DEPTH_EXCEEDED,
            line_number,
            source,
        )
        return ProcessedReference(token, ResolutionResult(original_reference=token.path), error=error)

    def _process_reference(
        self,
        token: ReferenceToken,
        depth: int,
        chain: Tuple[str, ...],
        parent_path: Optional[str],
        line_number: Optional[int],
        source: Optional[str],
    ) -> ProcessedReference:
        resolution = self.resolver.resolve(token.path, parent_path)
        if not resolution.ok:
            error = self._record(
                resolution.error or f"File not found: {token.path}",
                token.path,
                resolution.error_code or ErrorCode.FILE_NOT_FOUND,
                line_number,
                source,
            )
            return ProcessedReference(token, resolution, error=error)

        path = resolution.absolute_path
        if path in chain:
            cycle = " -> ".join(chain + (path,))
            error = self._record(
                f"Circular reference detected: {cycle}",
                path,
                ErrorCode.CIRCULAR_REFERENCE,
                line_number,
                source,
            )
            return ProcessedReference(token, resolution, error=error)

        try:
            content = read_file(path, self.cache, max_size=self.options.max_file_size)
        except FileReadError as exc:
            error = self._record(str(exc), path, ErrorCode.READ_ERROR, line_number, source)
            return ProcessedReference(token, resolution, error=error)
        self.mark_processed(path)

        if self.options.strip_frontmatter:
            content = strip_frontmatter(content)

        if token.heading or token.is_range:
            section = extract_section(content, token.heading, token.heading_range_end)
            if section is None:
                error = self._record(
                    f'Heading "{token.heading}" not found in {path}',
                    path,
                    ErrorCode.HEADING_NOT_FOUND,
                    line_number,
                    source,
                )
                return ProcessedReference(token, resolution, error=error)
            content = section

        if self.pipeline.transformers:
            context = TransformContext(
                path=path,
                heading=token.heading,
                range_end=token.heading_range_end,
                depth=depth,
            )
            content = self.pipeline.execute(content, context)

        expanded = self.expand_content(content, depth=depth + 1, chain=chain + (path,), parent_path=path)
        return ProcessedReference(token, resolution, content=expanded)

    def expand_content(
        self,
        content: str,
        *,
        depth: int,
        chain: Tuple[str, ...],
        parent_path: Optional[str],
    ) -> str:
        """Expand a whole included document and trim the result."""
        fences = FenceTracker()
        out: List[str] = []
        for index, line in enumerate(content.split("\n"), start=1):
            if fences.consume(line):
                out.append(line)
                continue
            out.append(
                self.expand(
                    line,
                    depth=depth,
                    chain=chain,
                    parent_path=parent_path,
                    line_number=index,
                    source=parent_path,
                )
            )
        return "\n".join(out).strip()


__all__ = ["LineTranscluder", "compose_line", "default_cache"]

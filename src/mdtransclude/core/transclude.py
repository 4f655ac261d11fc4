"""Top-level entry points.

Every call builds its own engine state; nothing is shared between calls
except a cache passed in through the options.
"""
from __future__ import annotations

import os
from typing import IO, Iterable, Iterator, List, Optional, Tuple

from .engine import ErrorListener, FileListener, LineTranscluder
from .errors import ProcessingError
from .models import TransclusionOptions, TransclusionResult
from .reader import read_text_file
from .stream import Chunk, TransclusionStream

DEFAULT_CHUNK_SIZE = 64 * 1024


def _result(stream: TransclusionStream, content: str) -> TransclusionResult:
    return TransclusionResult(
        content=content,
        errors=list(stream.errors),
        processed_files=stream.processed_files,
    )


def transclude(text: str, options: Optional[TransclusionOptions] = None) -> TransclusionResult:
    """Expand every marker in ``text``.

    The text goes through the streaming adapter as a single chunk, so the
    output matches what any chunking of the same input would produce.
    """
    stream = TransclusionStream(options)
    content = stream.feed(text) + stream.close()
    return _result(stream, content)


def transclude_file(path: str, options: Optional[TransclusionOptions] = None) -> TransclusionResult:
    """Expand the Markdown file at ``path``.

    Without options the file's directory is the base path. The file itself
    seeds cycle detection and is reported first in ``processed_files``.

    Raises:
        FileReadError: if ``path`` itself cannot be read
    """
    absolute = os.path.abspath(path)
    if options is None:
        options = TransclusionOptions(base_path=os.path.dirname(absolute))
    options = options.with_changes(initial_file_path=absolute)

    text = read_text_file(absolute, max_size=options.max_file_size)

    stream = TransclusionStream(options)
    stream.engine.mark_processed(absolute)
    content = stream.feed(text) + stream.close()
    return _result(stream, content)


def process_line(
    line: str, options: Optional[TransclusionOptions] = None
) -> Tuple[str, List[ProcessingError]]:
    """Expand a single line; return the output and the errors it produced."""
    engine = LineTranscluder(options)
    output = engine.process_line(line, 1)
    return output, list(engine.errors)


def iter_transclude(
    chunks: Iterable[Chunk],
    options: Optional[TransclusionOptions] = None,
    *,
    on_error: Optional[ErrorListener] = None,
    on_file: Optional[FileListener] = None,
) -> Iterator[str]:
    """Pull chunks one at a time and yield the output produced for each.

    Closing the generator early aborts the underlying stream.
    """
    stream = TransclusionStream(options, on_error=on_error, on_file=on_file)
    try:
        for chunk in chunks:
            output = stream.feed(chunk)
            if output:
                yield output
        tail = stream.close()
        if tail:
            yield tail
    finally:
        if not stream.closed:
            stream.abort()


def transclude_stream(
    source: IO,
    sink: IO[str],
    options: Optional[TransclusionOptions] = None,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_error: Optional[ErrorListener] = None,
    on_file: Optional[FileListener] = None,
) -> TransclusionStream:
    """Copy ``source`` to ``sink`` with every marker expanded.

    ``source`` may be a binary or text file object. Returns the finished
    stream so callers can inspect ``errors`` and ``processed_files``.
    """
    stream = TransclusionStream(options, on_error=on_error, on_file=on_file)
    try:
        while True:
            chunk = source.read(chunk_size)
            if not chunk:
                break
            output = stream.feed(chunk)
            if output:
                sink.write(output)
        tail = stream.close()
        if tail:
            sink.write(tail)
    except BaseException:
        stream.abort()
        raise
    return stream


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "transclude",
    "transclude_file",
    "process_line",
    "iter_transclude",
    "transclude_stream",
]

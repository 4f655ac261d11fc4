"""Streaming adapter around :class:`LineTranscluder`.

Input arrives in chunks of bytes or text. Bytes are decoded incrementally, so
a multi-byte character split across two chunks is reassembled. Complete lines
are expanded as soon as they are seen; only the trailing partial line is
buffered. Line endings (``\\n`` or ``\\r\\n``) are preserved, so the output for
a document without markers is identical to the input however it is chunked.
Template variables, when configured, are substituted into each emitted line
after expansion.
"""
from __future__ import annotations

import codecs
import logging
from typing import List, Optional, Union

from .engine import ErrorListener, FileListener, LineTranscluder
from .errors import ProcessingError
from .frontmatter import FrontmatterFilter, FrontmatterState
from .models import TransclusionOptions
from .tokenizer import FenceTracker
from .variables import substitute_template_variables

logger = logging.getLogger(__name__)

Chunk = Union[bytes, bytearray, str]


class StreamClosedError(ValueError):
    """Raised when feeding a stream that was already closed."""


class TransclusionStream:
    """Push-style streaming transcluder.

    Usage:
        stream = TransclusionStream(options)
        for chunk in source:
            sink.write(stream.feed(chunk))
        sink.write(stream.close())
        stream.errors  # accumulated ProcessingError list
    """

    def __init__(
        self,
        options: Optional[TransclusionOptions] = None,
        *,
        on_error: Optional[ErrorListener] = None,
        on_file: Optional[FileListener] = None,
    ) -> None:
        self.options = options or TransclusionOptions()
        self.engine = LineTranscluder(self.options, on_error=on_error, on_file=on_file)
        self._decoder = codecs.getincrementaldecoder("utf-8-sig")(errors="replace")
        self._buffer = ""
        self._started = False
        self._line_number = 0
        self._fences = FenceTracker()
        self._frontmatter: Optional[FrontmatterFilter] = (
            FrontmatterFilter() if self.options.strip_frontmatter else None
        )
        self.closed = False
        self.aborted = False

    # ========== Reporting ==========

    @property
    def errors(self) -> List[ProcessingError]:
        return self.engine.errors

    @property
    def processed_files(self) -> List[str]:
        return self.engine.processed_files

    @property
    def frontmatter_state(self) -> Optional[FrontmatterState]:
        return self._frontmatter.state if self._frontmatter is not None else None

    @property
    def line_number(self) -> int:
        return self._line_number

    def on_error(self, listener: ErrorListener) -> None:
        self.engine.add_error_listener(listener)

    def on_file(self, listener: FileListener) -> None:
        self.engine.add_file_listener(listener)

    # ========== Processing ==========

    def _decode(self, chunk: Chunk) -> str:
        if isinstance(chunk, (bytes, bytearray)):
            text = self._decoder.decode(bytes(chunk))
        else:
            text = chunk
            if not self._started and text.startswith("\ufeff"):
                text = text[1:]
        if text:
            self._started = True
        return text

    def _emit(self, line: str, eol: str) -> str:
        self._line_number += 1
        if line.endswith("\r"):
            line = line[:-1]
            eol = "\r" + eol

        if self._frontmatter is not None and self._frontmatter.suppress(line):
            return ""

        if self._fences.consume(line):
            output = line
        else:
            output = self.engine.process_line(line, self._line_number)

        if self.options.validate_only:
            return ""
        if self.options.template_variables:
            output = substitute_template_variables(output, self.options.template_variables)
        return output + eol

    def feed(self, chunk: Chunk) -> str:
        """Consume one chunk and return the output for every completed line.

        Returns an empty string after :meth:`abort`.

        Raises:
            StreamClosedError: if the stream was already closed
        """
        if self.aborted:
            return ""
        if self.closed:
            raise StreamClosedError("feed() called on a closed TransclusionStream")

        self._buffer += self._decode(chunk)
        if "\n" not in self._buffer:
            return ""

        *lines, self._buffer = self._buffer.split("\n")
        return "".join(self._emit(line, "\n") for line in lines)

    def close(self) -> str:
        """Flush the decoder and the trailing partial line; return its output."""
        if self.aborted or self.closed:
            self.closed = True
            return ""
        self.closed = True

        self._buffer += self._decoder.decode(b"", final=True)
        tail, self._buffer = self._buffer, ""
        if not tail:
            return ""
        output = []
        if "\n" in tail:
            *lines, tail = tail.split("\n")
            output.extend(self._emit(line, "\n") for line in lines)
        if tail:
            output.append(self._emit(tail, ""))
        return "".join(output)

    def abort(self) -> None:
        """Drop buffered input; later feed/close calls produce nothing."""
        if not self.aborted and not self.closed:
            logger.debug("Transclusion stream aborted after %d line(s)", self._line_number)
        self.aborted = True
        self._buffer = ""
        self._decoder.reset()


__all__ = ["TransclusionStream", "StreamClosedError"]

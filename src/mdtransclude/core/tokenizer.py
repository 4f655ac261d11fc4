"""Reference tokenizer.

Finds ``![[path#heading:end]]`` markers on a single line. Markers inside
inline code spans or HTML comments are ignored; markers inside fenced code
blocks are handled one level up with :class:`FenceTracker`, because fences
span lines.

The tokenizer never raises: anything it cannot make sense of is left as
literal text.
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from .models import ReferenceToken

OPEN_MARKER = "![["
CLOSE_MARKER = "]]"

INLINE_CODE_PATTERN = re.compile(r"`[^`\n]+`")
HTML_COMMENT_OPEN = "<!--"
HTML_COMMENT_CLOSE = "-->"
FENCE_PATTERN = re.compile(r"^\s{0,3}(`{3,}|~{3,})")

# Alternation order matters: an opener wins over the plain ``[[`` it contains.
_BRACKET_PATTERN = re.compile(r"!\[\[|\[\[|\]\]")


def _masked(line: str) -> bytearray:
    """Return a per-character flag for inline code spans and HTML comments.

    Linear in the length of the line.
    """
    mask = bytearray(len(line))
    for match in INLINE_CODE_PATTERN.finditer(line):
        start, end = match.span()
        mask[start:end] = b"\x01" * (end - start)

    pos = 0
    while True:
        start = line.find(HTML_COMMENT_OPEN, pos)
        if start < 0:
            break
        close = line.find(HTML_COMMENT_CLOSE, start + len(HTML_COMMENT_OPEN))
        if close < 0:
            # No later comment can close either.
            break
        end = close + len(HTML_COMMENT_CLOSE)
        mask[start:end] = b"\x01" * (end - start)
        pos = end
    return mask


def _match_openers(line: str) -> Dict[int, int]:
    """Map each marker start to the index of its matching ``]]``.

    One left-to-right pass with a stack of open brackets. Plain ``[[`` pairs
    nest inside a marker; a ``]]`` with nothing open is ignored. Openers that
    never close are absent from the result.
    """
    matches: Dict[int, int] = {}
    stack: List[Tuple[int, bool]] = []
    for match in _BRACKET_PATTERN.finditer(line):
        token = match.group(0)
        if token == CLOSE_MARKER:
            if stack:
                start, is_marker = stack.pop()
                if is_marker:
                    matches[start] = match.start()
        else:
            stack.append((match.start(), token == OPEN_MARKER))
    return matches


def _split_unescaped(text: str, sep: str) -> Tuple[str, Optional[str]]:
    """Split on the first ``sep`` not preceded by a backslash."""
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text) and text[i + 1] == sep:
            i += 2
            continue
        if ch == sep:
            return text[:i], text[i + 1 :]
        i += 1
    return text, None


def _unescape(text: str, sep: str) -> str:
    return text.replace("\\" + sep, sep)


def parse_marker(original: str, start: int = 0) -> Optional[ReferenceToken]:
    """Build a token from a complete ``![[...]]`` marker, or None if invalid."""
    if not (original.startswith(OPEN_MARKER) and original.endswith(CLOSE_MARKER)):
        return None
    inner = original[len(OPEN_MARKER) : -len(CLOSE_MARKER)]

    raw_path, selector = _split_unescaped(inner, "#")
    path = _unescape(raw_path, "#").strip()
    if not path:
        return None

    heading: Optional[str] = None
    range_end: Optional[str] = None
    if selector is not None:
        raw_heading, raw_end = _split_unescaped(selector, ":")
        heading = _unescape(raw_heading, ":").strip()
        if raw_end is not None:
            range_end = _unescape(raw_end, ":").strip()
        elif not heading:
            heading = None

    return ReferenceToken(
        original=original,
        path=path,
        start=start,
        end=start + len(original),
        heading=heading,
        heading_range_end=range_end,
    )


def parse_references(line: str) -> List[ReferenceToken]:
    """Return the valid reference tokens on ``line``, left to right."""
    if not line or OPEN_MARKER not in line:
        return []

    mask = _masked(line)
    closes = _match_openers(line)
    tokens: List[ReferenceToken] = []
    pos = 0
    while True:
        start = line.find(OPEN_MARKER, pos)
        if start < 0:
            break
        if mask[start]:
            pos = start + 1
            continue
        close = closes.get(start, -1)
        if close < 0:
            pos = start + 1
            continue
        end = close + len(CLOSE_MARKER)
        token = parse_marker(line[start:end], start)
        if token is not None:
            tokens.append(token)
        pos = end
    return tokens


def has_references(line: str) -> bool:
    return bool(parse_references(line))


class FenceTracker:
    """Track fenced code blocks across consecutive lines.

    A fence opens on a line starting with three or more backticks or tildes
    and closes on a line made only of the same character, at least as long.
    """

    def __init__(self) -> None:
        self._fence: Optional[str] = None

    @property
    def inside(self) -> bool:
        return self._fence is not None

    def consume(self, line: str) -> bool:
        """Feed the next line; return True if it belongs to a fenced block.

        Opening and closing fence lines count as part of the block.
        """
        match = FENCE_PATTERN.match(line)
        if self._fence is None:
            if match:
                self._fence = match.group(1)
                return True
            return False

        if match:
            run = match.group(1)
            if run[0] == self._fence[0] and len(run) >= len(self._fence) and line.strip() == run:
                self._fence = None
        return True

    def reset(self) -> None:
        self._fence = None


def fenced_lines(lines: List[str]) -> List[bool]:
    """Return a per-line flag telling whether each line sits in a fence."""
    tracker = FenceTracker()
    return [tracker.consume(line) for line in lines]


__all__ = [
    "OPEN_MARKER",
    "CLOSE_MARKER",
    "parse_references",
    "parse_marker",
    "has_references",
    "FenceTracker",
    "fenced_lines",
]

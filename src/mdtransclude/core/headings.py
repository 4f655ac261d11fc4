"""Heading-scoped extraction from Markdown content.

Headings are ATX style (``#`` to ``######``). Names compare trimmed and
case-insensitive. Lines inside fenced code blocks are never headings.
"""
from __future__ import annotations

import re
from typing import Iterator, List, NamedTuple, Optional

from .tokenizer import FenceTracker

HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+)$")


class Heading(NamedTuple):
    index: int
    level: int
    text: str


def _normalize(text: str) -> str:
    return text.strip().lower()


def iter_headings(lines: List[str], start: int = 0) -> Iterator[Heading]:
    """Yield headings from ``lines`` at or after ``start``, skipping fences."""
    fences = FenceTracker()
    for index, line in enumerate(lines):
        if fences.consume(line) or index < start:
            continue
        match = HEADING_PATTERN.match(line.rstrip("\r"))
        if match:
            yield Heading(index, len(match.group(1)), match.group(2).strip())


def find_heading(lines: List[str], name: str, start: int = 0) -> Optional[Heading]:
    wanted = _normalize(name)
    for heading in iter_headings(lines, start):
        if _normalize(heading.text) == wanted:
            return heading
    return None


def _join_trimmed(lines: List[str]) -> str:
    end = len(lines)
    while end > 0 and not lines[end - 1].strip():
        end -= 1
    return "\n".join(lines[:end])


def extract_heading(content: str, heading: str) -> Optional[str]:
    """Return the section under ``heading``, or None if it does not exist.

    The section runs from the heading line up to the next heading of the same
    or a higher level. Trailing blank lines are dropped. An empty ``heading``
    returns ``content`` unchanged.
    """
    if not heading or not heading.strip():
        return content

    lines = content.split("\n")
    match = find_heading(lines, heading)
    if match is None:
        return None

    end = len(lines)
    for nxt in iter_headings(lines, match.index + 1):
        if nxt.level <= match.level:
            end = nxt.index
            break
    return _join_trimmed(lines[match.index : end])


def extract_range(content: str, start_heading: Optional[str], end_heading: Optional[str] = None) -> Optional[str]:
    """Return the lines from ``start_heading`` up to, not including, ``end_heading``.

    An empty start means the beginning of the document; an empty end means
    the end of the document. The end heading is the first heading with that
    name after the start, whatever its level. If it never appears the rest of
    the document is returned. Returns None only when a named start heading
    is missing.
    """
    start_name = (start_heading or "").strip()
    end_name = (end_heading or "").strip()
    if not start_name and not end_name:
        return content

    lines = content.split("\n")
    if start_name:
        match = find_heading(lines, start_name)
        if match is None:
            return None
        begin = match.index
        search_from = begin + 1
    else:
        begin = 0
        search_from = 0

    end = len(lines)
    if end_name:
        stop = find_heading(lines, end_name, search_from)
        if stop is not None:
            end = stop.index
    return _join_trimmed(lines[begin:end])


def extract_section(content: str, heading: Optional[str], range_end: Optional[str] = None) -> Optional[str]:
    """Dispatch to :func:`extract_heading` or :func:`extract_range`.

    ``range_end`` is None for a plain heading reference and a string
    (possibly empty) for a range.
    """
    if range_end is None:
        return extract_heading(content, heading or "")
    return extract_range(content, heading, range_end)


__all__ = [
    "HEADING_PATTERN",
    "Heading",
    "iter_headings",
    "find_heading",
    "extract_heading",
    "extract_range",
    "extract_section",
]

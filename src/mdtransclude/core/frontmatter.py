"""Front matter detection and stripping.

Front matter is a leading metadata block delimited by ``---`` (YAML) or
``+++`` (TOML) lines.

Example:
    ```markdown
    ---
    title: Guide
    ---

    # Guide
    ```

Two flavours exist. :func:`strip_frontmatter` works on a complete string and
needs a closing delimiter. :class:`FrontmatterFilter` works line by line for
the streaming adapter and cannot look ahead.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml

YAML_DELIMITER = "---"
TOML_DELIMITER = "+++"
DELIMITERS = {YAML_DELIMITER: "yaml", TOML_DELIMITER: "toml"}


@dataclass
class ParsedDocument:
    """Result of splitting a document into front matter and body.

    Attributes:
        kind: ``"yaml"``, ``"toml"`` or None when there is no front matter
        raw_frontmatter: Text between the delimiters
        content: The document body after the block
    """

    kind: Optional[str]
    raw_frontmatter: str
    content: str

    @property
    def has_frontmatter(self) -> bool:
        return self.kind is not None

    def metadata(self) -> Dict[str, Any]:
        """Parse YAML front matter into a dict (TOML blocks return {})."""
        if self.kind != "yaml" or not self.raw_frontmatter.strip():
            return {}
        try:
            parsed = yaml.safe_load(self.raw_frontmatter)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in frontmatter: {e}") from e
        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ValueError(f"Frontmatter must be a YAML mapping, got {type(parsed).__name__}")
        return parsed


def split_frontmatter(content: str) -> ParsedDocument:
    """Split ``content`` into front matter and body.

    The first line must be a delimiter and a matching closing line must
    exist; otherwise the whole content is the body. Blank lines right after
    the closing delimiter are dropped from the body.
    """
    lines = content.split("\n")
    first = lines[0].strip() if lines else ""
    kind = DELIMITERS.get(first)
    if kind is None:
        return ParsedDocument(None, "", content)

    for close in range(1, len(lines)):
        if lines[close].strip() == first:
            body_start = close + 1
            while body_start < len(lines) and not lines[body_start].strip():
                body_start += 1
            raw = "\n".join(line.rstrip("\r") for line in lines[1:close])
            return ParsedDocument(kind, raw, "\n".join(lines[body_start:]))

    return ParsedDocument(None, "", content)


def strip_frontmatter(content: str) -> str:
    """Return ``content`` without its leading front matter block.

    Idempotent: content without a complete block is returned unchanged.
    """
    return split_frontmatter(content).content


def has_frontmatter(content: str) -> bool:
    return split_frontmatter(content).has_frontmatter


class FrontmatterState(enum.Enum):
    NONE = "none"
    YAML_OPEN = "yaml_open"
    TOML_OPEN = "toml_open"
    INSIDE = "inside"
    DONE = "done"


class FrontmatterFilter:
    """Line-at-a-time front matter suppression.

    ``NONE`` holds until the first non-blank line. If that line is a
    delimiter the machine moves to the matching ``*_OPEN`` state and every
    line is suppressed until the same delimiter closes the block; otherwise it
    goes straight to ``DONE``. There is no backtracking: a block that never
    closes suppresses the rest of the input.
    """

    def __init__(self) -> None:
        self.state = FrontmatterState.NONE
        self._delimiter: Optional[str] = None

    def suppress(self, line: str) -> bool:
        """Feed one line; return True if it belongs to the front matter."""
        stripped = line.strip()
        state = self.state

        if state is FrontmatterState.DONE:
            return False

        if state is FrontmatterState.NONE:
            if not stripped:
                return False
            if stripped == YAML_DELIMITER:
                self.state = FrontmatterState.YAML_OPEN
            elif stripped == TOML_DELIMITER:
                self.state = FrontmatterState.TOML_OPEN
            else:
                self.state = FrontmatterState.DONE
                return False
            self._delimiter = stripped
            return True

        if stripped == self._delimiter:
            self.state = FrontmatterState.DONE
        elif state in (FrontmatterState.YAML_OPEN, FrontmatterState.TOML_OPEN):
            self.state = FrontmatterState.INSIDE
        return True


__all__ = [
    "ParsedDocument",
    "split_frontmatter",
    "strip_frontmatter",
    "has_frontmatter",
    "FrontmatterState",
    "FrontmatterFilter",
]

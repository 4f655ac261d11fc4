"""Content transformers applied to included files.

The engine runs an ordered pipeline of transformers on the content of every
included file, after front matter stripping and heading extraction and before
the content is expanded recursively.

Example:
    class Upper(ContentTransformer):
        def transform(self, content: str, context: TransformContext) -> str:
            return content.upper()

    options = TransclusionOptions(base_path="docs", transformers=[Upper()])
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from .exceptions import TransformerError


@dataclass(frozen=True)
class TransformContext:
    """What a transformer knows about the content it receives.

    Attributes:
        path: Absolute path of the included file
        heading: Heading (or range start) the content was extracted for
        range_end: Range end heading, if the reference was a range
        depth: Recursion depth of the including line
    """

    path: str
    heading: Optional[str] = None
    range_end: Optional[str] = None
    depth: int = 0


class ContentTransformer(ABC):
    """Abstract base class for content transformers.

    Transformers should be stateless; everything they need arrives through
    the context.
    """

    @abstractmethod
    def transform(self, content: str, context: TransformContext) -> str:
        """Return transformed ``content``."""
        ...

    def get_name(self) -> str:
        """Get transformer name for logging/debugging."""
        return self.__class__.__name__


class FunctionTransformer(ContentTransformer):
    """Adapt a plain ``(content) -> str`` callable."""

    def __init__(self, func: Callable[[str], str], name: Optional[str] = None) -> None:
        self.func = func
        self.name = name or getattr(func, "__name__", "function")

    def transform(self, content: str, context: TransformContext) -> str:
        return self.func(content)

    def get_name(self) -> str:
        return self.name


class TransformerPipeline:
    """Execute a sequence of transformers on content, in order."""

    def __init__(self, transformers: Optional[Iterable[ContentTransformer]] = None) -> None:
        self.transformers: List[ContentTransformer] = list(transformers or [])

    def __len__(self) -> int:
        return len(self.transformers)

    def execute(self, content: str, context: TransformContext) -> str:
        """Run every transformer in sequence.

        Raises:
            TransformerError: wrapping whatever a transformer raised, or when
                a transformer returns something other than a string
        """
        result = content
        for transformer in self.transformers:
            name = transformer.get_name()
            try:
                result = transformer.transform(result, context)
            except Exception as exc:
                raise TransformerError(
                    f"Transformer {name} failed on {context.path}: {exc}",
                    context={"transformer": name, "path": context.path},
                ) from exc
            if not isinstance(result, str):
                raise TransformerError(
                    f"Transformer {name} returned {type(result).__name__}, expected str",
                    context={"transformer": name, "path": context.path},
                )
        return result

    def add_transformer(self, transformer: ContentTransformer) -> None:
        """Add a transformer to the end of the pipeline."""
        self.transformers.append(transformer)

    def insert_transformer(self, index: int, transformer: ContentTransformer) -> None:
        """Insert a transformer at a specific position."""
        self.transformers.insert(index, transformer)


__all__ = [
    "TransformContext",
    "ContentTransformer",
    "FunctionTransformer",
    "TransformerPipeline",
]

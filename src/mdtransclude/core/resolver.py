"""Resolve reference paths to files inside the base directory.

Resolution order for a reference found in an included file:

1. the including file's directory, trying every candidate name
2. the base directory, trying every candidate name

Candidate names are the reference itself when it already has an extension,
otherwise the bare name followed by the name plus each configured extension.
"""
from __future__ import annotations

import logging
import os
from typing import List, Mapping, Optional, Sequence

from .errors import ErrorCode
from .exceptions import SecurityViolation, VariableSubstitutionError
from .models import DEFAULT_EXTENSIONS, ResolutionResult, TransclusionOptions
from .security import is_within_root, validate_reference
from .variables import substitute_variables

logger = logging.getLogger(__name__)


def has_explicit_extension(path: str) -> bool:
    return os.path.splitext(path)[1] != ""


def candidate_paths(reference: str, extensions: Sequence[str] = DEFAULT_EXTENSIONS) -> List[str]:
    """Return the relative paths to try for ``reference``, in order."""
    if has_explicit_extension(reference):
        return [reference]
    candidates = [reference]
    for ext in extensions:
        if not ext:
            continue
        suffix = ext if ext.startswith(".") else "." + ext
        candidates.append(reference + suffix)
    return candidates


def _contained(absolute: str, root: str) -> bool:
    # Symlinks must not lead out of the root either.
    if not is_within_root(absolute, root):
        return False
    return is_within_root(os.path.realpath(absolute), os.path.realpath(root))


def _search_bases(root: str, parent_path: Optional[str]) -> List[str]:
    bases: List[str] = []
    if parent_path:
        bases.append(os.path.dirname(os.path.abspath(parent_path)))
    if root not in bases:
        bases.append(root)
    return bases


def resolve_path(
    reference: str,
    *,
    base_path: str,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    variables: Optional[Mapping[str, str]] = None,
    strict: bool = False,
    parent_path: Optional[str] = None,
) -> ResolutionResult:
    """Resolve ``reference`` to an existing regular file.

    Never raises for bad input; failures come back as a result with
    ``exists=False`` and an ``error_code``.

    Args:
        reference: Raw reference path from the marker
        base_path: Root directory; nothing outside it is ever returned
        extensions: Extensions to try for extension-less references
        variables: ``{{name}}`` substitution map
        strict: Fail on variable substitution problems
        parent_path: File containing the reference, if any

    Returns:
        ResolutionResult
    """
    if not reference or not reference.strip():
        return ResolutionResult(
            original_reference=reference,
            error="Empty reference path",
            error_code=ErrorCode.RESOLVE_ERROR,
        )

    try:
        substituted = substitute_variables(reference, variables, strict=strict)
    except VariableSubstitutionError as exc:
        return ResolutionResult(
            original_reference=reference,
            error=f"{exc}: {reference}",
            error_code=ErrorCode.RESOLVE_ERROR,
        )

    try:
        validate_reference(substituted)
    except SecurityViolation as exc:
        logger.debug("Rejected reference %r: %s", reference, exc)
        return ResolutionResult(
            original_reference=reference,
            error=f"{exc}: {reference}",
            error_code=exc.code,
        )

    root = os.path.abspath(base_path)
    candidates = candidate_paths(substituted, extensions)
    tried: List[str] = []
    security_error: Optional[SecurityViolation] = None

    for search_base in _search_bases(root, parent_path):
        for relative in candidates:
            absolute = os.path.normpath(os.path.join(search_base, relative))
            if not _contained(absolute, root):
                security_error = SecurityViolation(ErrorCode.OUTSIDE_BASE, reference)
                continue
            tried.append(absolute)
            if os.path.isfile(absolute):
                return ResolutionResult(
                    original_reference=reference,
                    absolute_path=absolute,
                    exists=True,
                    tried=tried,
                )

    if security_error is not None:
        logger.debug("Reference %r escapes base path %s", reference, root)
        return ResolutionResult(
            original_reference=reference,
            error=f"{security_error}: {reference}",
            error_code=security_error.code,
            tried=tried,
        )

    primary = os.path.normpath(os.path.join(_search_bases(root, parent_path)[0], substituted))
    return ResolutionResult(
        original_reference=reference,
        absolute_path=primary,
        error=f"File not found: {substituted}",
        error_code=ErrorCode.FILE_NOT_FOUND,
        tried=tried,
    )


class PathResolver:
    """Resolver bound to one set of options."""

    def __init__(self, options: TransclusionOptions) -> None:
        self.options = options
        self.base_path = os.path.abspath(options.base_path)

    def resolve(self, reference: str, parent_path: Optional[str] = None) -> ResolutionResult:
        return resolve_path(
            reference,
            base_path=self.base_path,
            extensions=self.options.extensions,
            variables=self.options.variables,
            strict=self.options.strict,
            parent_path=parent_path,
        )


__all__ = ["resolve_path", "candidate_paths", "has_explicit_extension", "PathResolver"]

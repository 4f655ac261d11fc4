"""``{{name}}`` substitution.

Reference paths use a flat key to string map. A value may itself contain
placeholders, which are expanded recursively with cycle and depth checks.

Template variables are applied once to emitted content. Their values may be
callables, evaluated at each occurrence.
"""
from __future__ import annotations

import logging
import re
from typing import Any, FrozenSet, Mapping, Optional

from .exceptions import VariableSubstitutionError

logger = logging.getLogger(__name__)

VARIABLE_PATTERN = re.compile(r"\{\{([a-zA-Z0-9_-]+)\}\}")
TEMPLATE_VARIABLE_PATTERN = re.compile(r"\{\{([a-zA-Z_][a-zA-Z0-9_.-]*)\}\}")

DEFAULT_MAX_VARIABLE_DEPTH = 10


def _expand(
    text: str,
    variables: Mapping[str, str],
    strict: bool,
    max_depth: int,
    visited: FrozenSet[str],
) -> str:
    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in visited:
            raise VariableSubstitutionError(
                f"Circular variable reference detected: {name}",
                variable=name,
                reason="circular",
            )
        if len(visited) >= max_depth:
            raise VariableSubstitutionError(
                f"Maximum variable substitution depth ({max_depth}) exceeded",
                variable=name,
                reason="max_depth",
            )
        if name not in variables:
            if strict:
                raise VariableSubstitutionError(
                    f"Undefined variable: {name}",
                    variable=name,
                    reason="undefined",
                )
            return match.group(0)

        value = str(variables[name])
        if VARIABLE_PATTERN.search(value):
            return _expand(value, variables, strict, max_depth, visited | {name})
        return value

    return VARIABLE_PATTERN.sub(replace, text)


def substitute_variables(
    path: str,
    variables: Optional[Mapping[str, str]] = None,
    *,
    strict: bool = False,
    max_depth: int = DEFAULT_MAX_VARIABLE_DEPTH,
) -> str:
    """Replace ``{{name}}`` placeholders in ``path``.

    Args:
        path: Reference path, possibly containing placeholders
        variables: Name to value map
        strict: Raise on undefined, circular or too-deep variables
        max_depth: Maximum nesting of variable values

    Returns:
        The substituted path. In non-strict mode undefined placeholders stay
        literal, and a circular or too-deep definition returns ``path``
        unchanged.

    Raises:
        VariableSubstitutionError: in strict mode only
    """
    if "{{" not in path:
        return path
    try:
        return _expand(path, variables or {}, strict, max_depth, frozenset())
    except VariableSubstitutionError:
        if strict:
            raise
        return path


def _render_template_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def substitute_template_variables(content: str, variables: Optional[Mapping[str, Any]] = None) -> str:
    """Replace ``{{name}}`` placeholders in emitted content.

    Unknown names are left as written. A callable value is called for every
    occurrence; if it raises, the failure is logged and the placeholder is
    kept. ``None`` renders as ``null`` and booleans as ``true``/``false``.
    Substituted values are not scanned again.
    """
    if not variables or "{{" not in content:
        return content

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in variables:
            return match.group(0)
        value = variables[name]
        if callable(value):
            try:
                value = value()
            except Exception as exc:
                logger.warning("Template variable %r failed: %s", name, exc)
                return match.group(0)
        return _render_template_value(value)

    return TEMPLATE_VARIABLE_PATTERN.sub(replace, content)


def find_variables(path: str) -> list[str]:
    """Return placeholder names in ``path``, in order of appearance."""
    return VARIABLE_PATTERN.findall(path)


__all__ = [
    "VARIABLE_PATTERN",
    "TEMPLATE_VARIABLE_PATTERN",
    "substitute_variables",
    "substitute_template_variables",
    "find_variables",
]

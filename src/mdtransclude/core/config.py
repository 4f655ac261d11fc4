"""
Configuration loading (YAML layers + environment overrides + jsonschema).
"""
from __future__ import annotations

import copy
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import yaml
from jsonschema import Draft202012Validator

from mdtransclude.data import get_data_path, read_yaml

from .exceptions import ConfigError
from .models import TransclusionOptions

logger = logging.getLogger(__name__)

PROJECT_CONFIG_NAME = ".mdtransclude.yaml"
ENV_PREFIX = "MDTRANSCLUDE_"

# Option fields that come straight from the ``transclusion`` section.
_TRANSCLUSION_KEYS = (
    "extensions",
    "max_depth",
    "strict",
    "strip_frontmatter",
    "validate_only",
    "variables",
    "max_file_size",
    "template_variables",
)

# Mappings whose environment values are kept as raw strings.
_STRING_MAPS = (("transclusion", "variables"), ("transclusion", "template_variables"))


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge dictionaries without mutating inputs.

    Lists in ``override`` replace lists in ``base``, unless the override list
    starts with ``"+"``, in which case the remaining items are appended.

    Example:
        >>> deep_merge({"a": 1, "b": {"c": 2}}, {"b": {"d": 3}})
        {'a': 1, 'b': {'c': 2, 'd': 3}}
    """
    result: Dict[str, Any] = dict(base)
    for key, value in (override or {}).items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        elif key in result and isinstance(result[key], list) and isinstance(value, list):
            result[key] = merge_arrays(result[key], value)
        else:
            result[key] = value
    return result


def merge_arrays(base: List[Any], override: List[Any]) -> List[Any]:
    if override and override[0] == "+":
        return [*base, *override[1:]]
    if override and override[0] == "=":
        return list(override[1:])
    return list(override)


class ConfigManager:
    """Load, merge, and validate mdtransclude configuration.

    Configuration sources (highest to lowest priority):
    1. Keyword overrides passed to :meth:`build_options`
    2. Environment variables: MDTRANSCLUDE_<SECTION>__<KEY>
    3. Project config: <project_root>/.mdtransclude.yaml, or an explicit file
    4. Bundled defaults: mdtransclude.data/config/defaults.yaml
    """

    ARRAY_APPEND_MARKER = object()

    def __init__(
        self,
        project_root: Optional[Union[str, Path]] = None,
        *,
        config_file: Optional[Union[str, Path]] = None,
    ) -> None:
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self.config_file = Path(config_file) if config_file else None
        self.schema_path = get_data_path("schemas", "config.schema.yaml")

    @property
    def project_config_path(self) -> Path:
        if self.config_file is not None:
            return self.config_file
        return self.project_root / PROJECT_CONFIG_NAME

    # ========== YAML layers ==========

    def load_defaults(self) -> Dict[str, Any]:
        return copy.deepcopy(read_yaml("config", "defaults.yaml") or {})

    def load_yaml(self, path: Path) -> Dict[str, Any]:
        """Load a YAML mapping; invalid YAML is an error, never ignored."""
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}", context={"path": str(path)}) from exc
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}", context={"path": str(path)}) from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"Config file {path} must contain a mapping, got {type(data).__name__}",
                context={"path": str(path)},
            )
        return data

    def load_project(self) -> Dict[str, Any]:
        path = self.project_config_path
        if not path.exists():
            if self.config_file is not None:
                raise ConfigError(f"Config file not found: {path}", context={"path": str(path)})
            return {}
        logger.debug("Loading project config from %s", path)
        return self.load_yaml(path)

    # ========== Environment overrides ==========

    def _as_bool(self, v: str) -> Optional[bool]:
        low = v.strip().lower()
        if low in {"true", "false"}:
            return low == "true"
        return None

    def _as_int(self, v: str) -> Optional[int]:
        if re.fullmatch(r"[-+]?\d+", v.strip() or " "):
            return int(v)
        return None

    def _as_float(self, v: str) -> Optional[float]:
        s = v.strip()
        if re.fullmatch(r"[-+]?\d*\.\d+", s) or re.fullmatch(r"[-+]?\d+\.\d*", s):
            return float(s)
        return None

    def _as_json(self, v: str) -> Optional[Any]:
        s = v.strip()
        if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
            try:
                return json.loads(s)
            except json.JSONDecodeError:
                return None
        return None

    def _coerce_type(self, value: str) -> Any:
        if value.strip().lower() in {"null", "none"}:
            return None
        for caster in (self._as_bool, self._as_int, self._as_float, self._as_json):
            result = caster(value)
            if result is not None:
                return result
        return value.strip()

    def _parse_env_key(self, raw: str) -> List[Union[str, int, object]]:
        segs = raw.split("__") if "__" in raw else raw.split("_", 1)
        processed: List[Union[str, int, object]] = []
        for seg in segs:
            if seg == "":
                raise ConfigError(f"Malformed {ENV_PREFIX}* key: empty segment in '{raw}'")
            if seg.isdigit():
                processed.append(int(seg))
            elif seg.upper() == "APPEND":
                processed.append(self.ARRAY_APPEND_MARKER)
            else:
                processed.append(seg.lower())
        return processed

    def _iter_env_overrides(self, known_sections: List[str]) -> Iterator[Tuple[List[Any], Any]]:
        for key in sorted(os.environ.keys()):
            if not key.startswith(ENV_PREFIX):
                continue
            raw = key[len(ENV_PREFIX) :]
            if not raw:
                continue
            path = self._parse_env_key(raw)
            if len(path) < 2 or path[0] not in known_sections:
                logger.warning("Ignoring unknown configuration variable %s", key)
                continue
            value = os.environ[key]
            if tuple(path[:2]) in _STRING_MAPS and len(path) > 2:
                yield path, value
            else:
                yield path, self._coerce_type(value)

    def _set_nested(self, root: Dict[str, Any], path: List[Any], value: Any) -> None:
        cur: Any = root
        for part in path[:-1]:
            if not isinstance(part, str) or not isinstance(cur, dict):
                raise ConfigError(f"Invalid configuration path: {path}")
            nxt = cur.get(part)
            if not isinstance(nxt, dict):
                nxt = {}
                cur[part] = nxt
            cur = nxt

        cur[path[-1]] = value

    def apply_env_overrides(self, cfg: Dict[str, Any]) -> None:
        sections = list(cfg.keys())
        for path, value in self._iter_env_overrides(sections):
            if path[-1] is self.ARRAY_APPEND_MARKER:
                parent = cfg
                for part in path[:-2]:
                    parent = parent.setdefault(part, {})
                target = parent.get(path[-2])
                if not isinstance(target, list):
                    raise ConfigError(f"APPEND requires a list at {'.'.join(map(str, path[:-1]))}")
                target.append(value)
                continue
            if isinstance(path[-1], int):
                parent = cfg
                for part in path[:-2]:
                    parent = parent.setdefault(part, {})
                target = parent.get(path[-2])
                if not isinstance(target, list):
                    raise ConfigError(f"Index assignment requires a list at {'.'.join(map(str, path[:-1]))}")
                while len(target) <= path[-1]:
                    target.append(None)
                target[path[-1]] = value
                continue
            self._set_nested(cfg, path, value)

    # ========== Validation ==========

    def validate(self, cfg: Dict[str, Any]) -> None:
        """Validate ``cfg`` against the bundled schema.

        Raises:
            ConfigError: listing every violation
        """
        schema = self.load_yaml(self.schema_path)
        validator = Draft202012Validator(schema)
        errors: List[str] = []
        for error in sorted(validator.iter_errors(cfg), key=lambda e: str(e.path)):
            if error.path:
                path_str = ".".join(str(p) for p in error.path)
                errors.append(f"{path_str}: {error.message}")
            else:
                errors.append(error.message)
        if errors:
            raise ConfigError(
                "Invalid configuration:\n  - " + "\n  - ".join(errors),
                context={"errors": errors},
            )

    def load_config(self, *, validate: bool = True, include_env: bool = True) -> Dict[str, Any]:
        """Return the merged configuration dict."""
        cfg = self.deep_merge(self.load_defaults(), self.load_project())
        if include_env:
            self.apply_env_overrides(cfg)
        level = (cfg.get("logging") or {}).get("level")
        if isinstance(level, str):
            cfg["logging"]["level"] = level.upper()
        if validate:
            self.validate(cfg)
        return cfg

    def deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        return deep_merge(base, override)

    # ========== Options ==========

    def build_options(self, base_path: Optional[Union[str, Path]] = None, **overrides: Any) -> TransclusionOptions:
        """Build :class:`TransclusionOptions` from config plus ``overrides``.

        ``overrides`` are option field names; ``None`` values are ignored and
        ``variables`` and ``template_variables`` are merged over the configured
        ones.
        """
        cfg = self.load_config()
        section = cfg.get("transclusion") or {}
        cache_cfg = cfg.get("cache") or {}

        fields: Dict[str, Any] = {key: section[key] for key in _TRANSCLUSION_KEYS if key in section}
        fields["cache_enabled"] = bool(cache_cfg.get("enabled", True))
        if "max_entry_size" in cache_cfg:
            fields["cache_max_entry_size"] = cache_cfg["max_entry_size"]
        fields["base_path"] = str(base_path) if base_path is not None else str(self.project_root)

        for key, value in overrides.items():
            if value is None:
                continue
            if key in ("variables", "template_variables"):
                fields[key] = {**(fields.get(key) or {}), **value}
            else:
                fields[key] = value

        try:
            return TransclusionOptions(**fields)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid transclusion options: {exc}") from exc


def load_config(
    project_root: Optional[Union[str, Path]] = None,
    *,
    config_file: Optional[Union[str, Path]] = None,
    validate: bool = True,
) -> Dict[str, Any]:
    return ConfigManager(project_root, config_file=config_file).load_config(validate=validate)


def load_options(
    project_root: Optional[Union[str, Path]] = None,
    *,
    config_file: Optional[Union[str, Path]] = None,
    base_path: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> TransclusionOptions:
    """Convenience wrapper around :meth:`ConfigManager.build_options`."""
    manager = ConfigManager(project_root, config_file=config_file)
    return manager.build_options(base_path, **overrides)


__all__ = [
    "PROJECT_CONFIG_NAME",
    "ENV_PREFIX",
    "ConfigManager",
    "deep_merge",
    "merge_arrays",
    "load_config",
    "load_options",
]

"""
mdtransclude command.

SUMMARY: Expand ![[file#heading]] transclusion markers in a Markdown document

Reads INPUT (or stdin) in chunks and writes the expanded document to OUTPUT
(or stdout). Reference errors become inline comments in the output and are
listed on stderr.
"""

from __future__ import annotations

import argparse
import io
import logging
import os
import sys
from typing import Dict, List, Optional

from mdtransclude.core.config import ConfigManager
from mdtransclude.core.exceptions import ConfigError
from mdtransclude.core.log import configure_logging
from mdtransclude.core.transclude import transclude_stream

from ._output import OutputFormatter

logger = logging.getLogger(__name__)

SUMMARY = "Expand transclusion markers in a Markdown document"

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command arguments."""
    parser.add_argument("input", nargs="?", default="-", help="Input file (default: stdin, or '-')")
    parser.add_argument("-o", "--output", help="Write output to this file instead of stdout")
    parser.add_argument("-b", "--base-path", help="Root directory for resolving references (default: input's directory)")
    parser.add_argument("--extensions", help="Comma-separated extensions to try, e.g. 'md,markdown'")
    parser.add_argument(
        "--var",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Define a {{KEY}} path variable (repeatable)",
    )
    parser.add_argument(
        "--template-var",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Substitute {{KEY}} in the output content (repeatable)",
    )
    parser.add_argument("--strict", action="store_true", default=None, help="Fail (exit 1) on any reference error")
    parser.add_argument("--max-depth", type=int, help="Maximum transclusion depth")
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=None,
        help="Check references without writing output",
    )
    parser.add_argument(
        "--strip-frontmatter",
        action="store_true",
        default=None,
        help="Strip YAML/TOML front matter from the document and included files",
    )
    parser.add_argument("--config", help="Configuration file (default: <base>/.mdtransclude.yaml)")
    parser.add_argument("--json", action="store_true", help="Emit a JSON report on stdout")
    parser.add_argument("--log-level", choices=LOG_LEVELS, type=str.upper, help="Log level")
    parser.add_argument("--log-file", help="Write logs to this file instead of stderr")


def parse_variables(pairs: List[str], flag: str = "--var") -> Dict[str, str]:
    """Parse ``KEY=VALUE`` pairs.

    Raises:
        ValueError: for a pair without ``=`` or with an empty key
    """
    variables: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid {flag} {pair!r}; expected KEY=VALUE")
        variables[key.strip()] = value
    return variables


def parse_extensions(raw: Optional[str]) -> Optional[List[str]]:
    if raw is None:
        return None
    exts = [e.strip() for e in raw.split(",") if e.strip()]
    return [e if e.startswith(".") else "." + e for e in exts]


def main(args: argparse.Namespace) -> int:
    """Run the transclusion."""
    formatter = OutputFormatter(json_mode=args.json)
    from_stdin = args.input in (None, "-")
    input_path = None if from_stdin else os.path.abspath(args.input)

    try:
        variables = parse_variables(args.var)
        template_variables = parse_variables(args.template_var, "--template-var")
    except ValueError as e:
        formatter.error(e, error_code="usage_error")
        return 2

    if args.base_path:
        base_path = os.path.abspath(args.base_path)
    elif input_path:
        base_path = os.path.dirname(input_path)
    else:
        base_path = os.getcwd()

    try:
        manager = ConfigManager(base_path, config_file=args.config)
        config = manager.load_config()
        log_cfg = config.get("logging") or {}
        configure_logging(args.log_level or log_cfg.get("level", "WARNING"), args.log_file or log_cfg.get("file"))
        options = manager.build_options(
            base_path,
            extensions=parse_extensions(args.extensions),
            variables=variables or None,
            template_variables=template_variables or None,
            strict=args.strict,
            max_depth=args.max_depth,
            validate_only=args.validate_only,
            strip_frontmatter=args.strip_frontmatter,
            initial_file_path=input_path,
        )
    except ConfigError as e:
        formatter.error(e, error_code="config_error")
        return 2

    try:
        source = sys.stdin.buffer if from_stdin else open(input_path, "rb")
    except OSError as e:
        formatter.error(e, f"Cannot read {args.input}: {e.strerror or e}", error_code="read_error")
        return 2

    try:
        if args.output:
            sink = open(args.output, "w", encoding="utf-8", newline="")
        elif args.json:
            sink = io.StringIO()
        else:
            sink = sys.stdout
    except OSError as e:
        if not from_stdin:
            source.close()
        formatter.error(e, f"Cannot write {args.output}: {e.strerror or e}", error_code="write_error")
        return 2

    try:
        stream = transclude_stream(
            source,
            sink,
            options,
            on_file=lambda path: logger.info("Transcluded %s", path),
        )
    finally:
        if not from_stdin:
            source.close()
        if args.output:
            sink.close()

    formatter.processing_errors(stream.errors, default_source=args.input if not from_stdin else "<stdin>")

    failed = bool(stream.errors) and (options.strict or options.validate_only)
    if args.json:
        payload = {
            "status": "error" if failed else "success",
            "errors": [e.to_dict() for e in stream.errors],
            "processed_files": stream.processed_files,
        }
        if isinstance(sink, io.StringIO) and not options.validate_only:
            payload["content"] = sink.getvalue()
        formatter.json_output(payload)
    elif options.validate_only and not stream.errors:
        formatter.text(f"OK: {len(stream.processed_files)} file(s) referenced, no errors")

    return 1 if failed else 0


__all__ = ["SUMMARY", "register_args", "main", "parse_variables", "parse_extensions"]

"""
Command line entry point for mdtransclude.
"""

from __future__ import annotations

import argparse
import sys

from mdtransclude import __version__

from . import transclude as _command
from ._output import OutputFormatter


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdtransclude",
        description=_command.SUMMARY,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    _command.register_args(parser)
    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the mdtransclude CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 success, 1 reference errors in strict/validate mode,
        2 unreadable input or bad configuration)
    """
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    return _command.main(args)


__all__ = ["main", "build_parser", "OutputFormatter"]

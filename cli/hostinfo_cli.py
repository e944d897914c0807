"""
hostinfo command-line entry point.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Optional

from cli.commands import info as info_cmd
from cli.context import CliContext


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hostinfo",
        description="Diagnostic snapshot of a container host",
    )
    parser.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only log errors")
    parser.add_argument("--verbose", "-v", action="store_true", help="Increase logging verbosity")
    parser.add_argument("--config", "-c", default=None, help="Daemon configuration file (YAML)")

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    info_cmd.add_parsers(subparsers)
    return parser


def configure_context(args: argparse.Namespace) -> CliContext:
    return CliContext(
        json_mode=getattr(args, "json", False),
        quiet=getattr(args, "quiet", False),
        verbose=getattr(args, "verbose", False),
    )


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    ctx = configure_context(args)
    ctx.configure_logging()

    if args.command not in ("info", "version"):
        parser.print_help()
        return info_cmd.EXIT_USAGE

    result = info_cmd.handle(ctx, args)
    exit_code = int(result.pop("exit_code", info_cmd.EXIT_OK))
    if ctx.json_mode:
        json.dump(result, sys.stdout, indent=2, sort_keys=True)
        sys.stdout.write("\n")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())

"""
Shared CLI context utilities.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import sys


@dataclass
class CliContext:
    json_mode: bool = False
    quiet: bool = False
    verbose: bool = False

    def configure_logging(self) -> None:
        if self.verbose:
            level = logging.DEBUG
        elif self.quiet:
            level = logging.ERROR
        else:
            level = logging.WARNING
        fmt = "[%(levelname)s] %(name)s: %(message)s" if self.verbose else "%(levelname)s: %(message)s"
        logging.basicConfig(level=level, format=fmt, stream=sys.stderr, force=True)

    def emit(self, message: str) -> None:
        print(message)

    def error(self, message: str) -> None:
        print(message, file=sys.stderr)

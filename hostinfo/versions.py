"""
Version resolution for the external components a host depends on.

Each tool's ``--version`` output has its own format, so every format gets a
pure parser returning ``Recognized`` or ``Unrecognized``. The resolve
functions run the tool, apply the parser and collapse every failure into
the ``N/A`` sentinel, logging why.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

from .collaborators import ServiceClient
from .errors import CommandError
from .model import NOT_AVAILABLE, ComponentVersion

logger = logging.getLogger(__name__)

TINI_PREFIX = "tini version "


@dataclass(frozen=True)
class Recognized:
    identifier: str
    # Set when the comparison baseline must change to match the identifier.
    expected: Optional[str] = None


@dataclass(frozen=True)
class Unrecognized:
    reason: str


ParseResult = Union[Recognized, Unrecognized]
CommandRunner = Callable[[str], str]


def parse_runtime_version(output: str) -> ParseResult:
    """
    Parse runtime output of the form::

        runc version 1.0.0-rc2
        commit: 51371867a01c467f08af739783b8beafc154c4d7
        spec: 1.0.0-rc2-dev
    """

    lines = output.strip().split("\n")
    if len(lines) != 3:
        return Unrecognized(f"expected 3 lines, got {len(lines)}")
    parts = lines[1].split(": ")
    if len(parts) != 2:
        return Unrecognized("second line is not a 'key: value' pair")
    identifier = parts[1].strip()
    if not identifier:
        return Unrecognized("empty commit")
    return Recognized(identifier)


def parse_init_version(output: str, expected: str) -> ParseResult:
    """
    Parse init output such as ``tini version 0.13.0 - git.949e6fa``.

    Release builds pin a ``v``-prefixed tag, so the version number is
    reported. Otherwise the short git sha is reported and the expected
    commit is cut to the same length so the two can be compared.
    """

    parts = output.strip().split(" - ")
    if len(parts) != 2:
        return Unrecognized("missing ' - ' separator")
    if expected.startswith("v"):
        version = parts[0]
        if version.startswith(TINI_PREFIX):
            version = version[len(TINI_PREFIX):]
        return Recognized("v" + version)

    git_parts = parts[1].split(".")
    if len(git_parts) != 2 or git_parts[0] != "git":
        return Unrecognized("no git.<sha> suffix")
    sha = git_parts[1]
    if not sha:
        return Unrecognized("empty git sha")
    return Recognized(sha, expected=expected[: len(sha)])


def _run_command(cmd: list[str]) -> Tuple[int, str, str]:
    try:
        proc = subprocess.run(
            cmd,
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except (OSError, subprocess.SubprocessError) as exc:
        raise CommandError(cmd[0], str(exc)) from exc
    return proc.returncode, proc.stdout, proc.stderr


def run_version_command(binary: str) -> str:
    """Run ``<binary> --version`` and return its standard output."""
    rc, stdout, stderr = _run_command([binary, "--version"])
    if rc != 0:
        raise CommandError(binary, f"exit status {rc}: {stderr.strip()}")
    return stdout


def _resolve_from_command(
    binary: str,
    expected: str,
    parse: Callable[[str], ParseResult],
    runner: CommandRunner,
) -> ComponentVersion:
    try:
        output = runner(binary)
    except CommandError as exc:
        logger.warning("failed to retrieve %s version: %s", binary, exc.reason)
        return ComponentVersion(expected=expected, observed=NOT_AVAILABLE)

    result = parse(output)
    if isinstance(result, Unrecognized):
        logger.warning("failed to retrieve %s version: unknown output format (%s): %s", binary, result.reason, output)
        return ComponentVersion(expected=expected, observed=NOT_AVAILABLE)
    return ComponentVersion(
        expected=result.expected if result.expected is not None else expected,
        observed=result.identifier,
    )


def resolve_runtime_commit(binary: str, expected: str, runner: CommandRunner = run_version_command) -> ComponentVersion:
    return _resolve_from_command(binary, expected, parse_runtime_version, runner)


def resolve_init_commit(binary: str, expected: str, runner: CommandRunner = run_version_command) -> ComponentVersion:
    return _resolve_from_command(binary, expected, lambda output: parse_init_version(output, expected), runner)


def resolve_containerd_commit(client: ServiceClient, expected: str) -> ComponentVersion:
    try:
        revision = client.server_version().revision
    except Exception as exc:  # noqa: BLE001
        logger.warning("failed to retrieve containerd version: %s", exc)
        return ComponentVersion(expected=expected, observed=NOT_AVAILABLE)
    return ComponentVersion(expected=expected, observed=revision)

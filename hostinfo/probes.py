"""
Fact probes for the local host.

Each probe either returns a value or raises ``ProbeError``; choosing a
placeholder is left to the caller.
"""

from __future__ import annotations

import os
import re
import socket
from pathlib import Path
from typing import Dict, Iterable, Optional

from .errors import ProbeError
from .model import KernelVersion, MemInfo

OS_RELEASE_PATHS = (Path("/etc/os-release"), Path("/usr/lib/os-release"))
PROC_ROOT = Path("/proc")

_RELEASE_RE = re.compile(r"^(\d+)\.(\d+)(\S*)")
_MINOR_RE = re.compile(r"^\.(\d+)(\S*)")


def parse_kernel_release(release: str) -> KernelVersion:
    """
    Parse a kernel release such as ``4.9.0-generic`` or ``3.12-1-amd64``.

    A release without a minor component keeps everything after the major
    number as the flavor, so ``3.12-1-amd64`` renders as ``3.12.0-1-amd64``.
    """

    match = _RELEASE_RE.match(release.strip())
    if not match:
        raise ProbeError("kernel version", f"can't parse kernel version {release!r}")
    kernel, major, partial = int(match.group(1)), int(match.group(2)), match.group(3)
    minor = 0
    flavor = partial
    minor_match = _MINOR_RE.match(partial)
    if minor_match:
        minor = int(minor_match.group(1))
        flavor = minor_match.group(2)
    return KernelVersion(kernel=kernel, major=major, minor=minor, flavor=flavor)


def get_kernel_version() -> KernelVersion:
    try:
        release = os.uname().release
    except (AttributeError, OSError) as exc:
        raise ProbeError("kernel version", str(exc)) from exc
    return parse_kernel_release(release)


def _parse_os_release(blob: str) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for line in blob.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip("'\"")
    return values


def get_operating_system(paths: Iterable[Path] = OS_RELEASE_PATHS) -> str:
    """Return PRETTY_NAME from os-release, or ``Linux`` when it is not set."""
    for path in paths:
        try:
            blob = Path(path).read_text(encoding="utf-8", errors="ignore")
        except FileNotFoundError:
            continue
        except OSError as exc:
            raise ProbeError("operating system", str(exc)) from exc
        pretty = _parse_os_release(blob).get("PRETTY_NAME")
        return pretty or "Linux"
    raise ProbeError("operating system", "no os-release file found")


def is_containerized(proc_root: Path = PROC_ROOT) -> bool:
    cgroup = Path(proc_root) / "1" / "cgroup"
    try:
        blob = cgroup.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProbeError("containerized", str(exc)) from exc
    for line in blob.splitlines():
        parts = line.split(":", 2)
        if len(parts) == 3 and parts[2] not in ("/", "/init.scope"):
            return True
    return False


def _extract_meminfo(blob: str, key: str) -> int:
    for line in blob.splitlines():
        if line.startswith(f"{key}:"):
            parts = line.split()
            if len(parts) >= 2:
                value = int(parts[1])
                if len(parts) >= 3 and parts[2].lower() == "kb":
                    value *= 1024
                return value
    return 0


def read_meminfo(proc_root: Path = PROC_ROOT) -> MemInfo:
    try:
        blob = (Path(proc_root) / "meminfo").read_text(encoding="utf-8")
        return MemInfo(
            mem_total=_extract_meminfo(blob, "MemTotal"),
            mem_free=_extract_meminfo(blob, "MemFree"),
            swap_total=_extract_meminfo(blob, "SwapTotal"),
            swap_free=_extract_meminfo(blob, "SwapFree"),
        )
    except (OSError, ValueError) as exc:
        raise ProbeError("memory info", str(exc)) from exc


def get_hostname() -> str:
    try:
        return socket.gethostname()
    except OSError as exc:
        raise ProbeError("hostname", str(exc)) from exc


def num_cpu() -> int:
    # Honour CPU affinity where the scheduler exposes it.
    if hasattr(os, "sched_getaffinity"):
        try:
            return len(os.sched_getaffinity(0))
        except OSError:
            pass
    count = os.cpu_count()
    if not count:
        raise ProbeError("cpu count", "unable to determine CPU count")
    return count


def used_fds(proc_root: Path = PROC_ROOT) -> int:
    fd_dir = Path(proc_root) / "self" / "fd"
    try:
        return sum(1 for _ in fd_dir.iterdir())
    except OSError as exc:
        raise ProbeError("open files", str(exc)) from exc


def proxy_env(key: str, environ: Optional[Dict[str, str]] = None) -> str:
    """Look up a proxy variable, preferring the upper-case spelling."""
    env = os.environ if environ is None else environ
    return env.get(key.upper()) or env.get(key.lower()) or ""

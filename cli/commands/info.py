"""
``info`` and ``version`` subcommand handlers for the hostinfo CLI.
"""

from __future__ import annotations

import argparse
from typing import Any, Dict, List, MutableMapping

from cli.context import CliContext
from engine import bootstrap_builder
from hostinfo.errors import ConfigError
from hostinfo.model import Snapshot, VersionInfo

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_CONFIG = 2


def add_parsers(subparsers: argparse._SubParsersAction) -> None:
    info = subparsers.add_parser("info", help="Display a diagnostic snapshot of the host")
    info.set_defaults(command="info")
    version = subparsers.add_parser("version", help="Display build and kernel version information")
    version.set_defaults(command="version")


def _human_size(value: int) -> str:
    size = float(value)
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if size < 1024 or unit == "TiB":
            return f"{size:.4g} {unit}"
        size /= 1024
    return f"{value} B"


def render_snapshot(snapshot: Snapshot) -> List[str]:
    counts = snapshot.containers
    lines = [
        f"Containers: {counts.total}",
        f" Running: {counts.running}",
        f" Paused: {counts.paused}",
        f" Stopped: {counts.stopped}",
        f"Images: {snapshot.images}",
        f"Server Version: {snapshot.server_version}",
        f"Storage Driver: {snapshot.driver}",
    ]
    lines.extend(f" {key}: {value}" for key, value in snapshot.driver_status)
    lines.append(f"Logging Driver: {snapshot.logging_driver}")
    lines.append(f"Cgroup Driver: {snapshot.cgroup_driver}")
    lines.append("Plugins:")
    lines.append(f" Volume: {' '.join(snapshot.plugins.volume)}")
    lines.append(f" Network: {' '.join(snapshot.plugins.network)}")
    if snapshot.plugins.authorization:
        lines.append(f" Authorization: {' '.join(snapshot.plugins.authorization)}")
    if snapshot.runtimes:
        lines.append(f"Runtimes: {' '.join(sorted(snapshot.runtimes))}")
        lines.append(f"Default Runtime: {snapshot.default_runtime}")
        lines.append(f"Init Binary: {snapshot.init_binary}")
    for name, component in snapshot.components.items():
        lines.append(f"{name} version: {component.observed} (expected: {component.expected})")
    if snapshot.security_options:
        lines.append("Security Options:")
        for option in snapshot.security_options:
            if option.key == "Name":
                lines.append(f" {option.value}")
            else:
                lines.append(f"  {option.key}: {option.value}")
    lines.extend(
        [
            f"Kernel Version: {snapshot.kernel_version}",
            f"Operating System: {snapshot.operating_system}",
            f"OSType: {snapshot.os_type}",
            f"Architecture: {snapshot.architecture}",
            f"CPUs: {snapshot.ncpu}",
            f"Total Memory: {_human_size(snapshot.mem_total)}",
            f"Name: {snapshot.name}",
            f"ID: {snapshot.id}",
            f"Root Dir: {snapshot.root_dir}",
            f"Debug Mode: {str(snapshot.debug).lower()}",
        ]
    )
    if snapshot.debug:
        lines.append(f" File Descriptors: {snapshot.n_fd}")
        lines.append(f" Threads: {snapshot.n_threads}")
        lines.append(f" System Time: {snapshot.system_time}")
        lines.append(f" EventsListeners: {snapshot.n_events_listener}")
    for label, value in (("Http Proxy", snapshot.http_proxy), ("Https Proxy", snapshot.https_proxy), ("No Proxy", snapshot.no_proxy)):
        if value:
            lines.append(f"{label}: {value}")
    if snapshot.labels:
        lines.append("Labels:")
        lines.extend(f" {label}" for label in snapshot.labels)
    lines.append(f"Experimental: {str(snapshot.experimental_build).lower()}")
    if snapshot.insecure_registries:
        lines.append("Insecure Registries:")
        lines.extend(f" {registry}" for registry in snapshot.insecure_registries)
    if snapshot.registry_mirrors:
        lines.append("Registry Mirrors:")
        lines.extend(f" {mirror}" for mirror in snapshot.registry_mirrors)
    lines.append(f"Live Restore Enabled: {str(snapshot.live_restore_enabled).lower()}")
    return lines


def render_version(version: VersionInfo) -> List[str]:
    return [
        f"Version: {version.version}",
        f"API version: {version.api_version} (minimum version {version.min_api_version})",
        f"Python version: {version.python_version}",
        f"Git commit: {version.git_commit}",
        f"Built: {version.build_time or '<unknown>'}",
        f"OS/Arch: {version.os}/{version.arch}",
        f"Kernel Version: {version.kernel_version}",
        f"Experimental: {str(version.experimental).lower()}",
    ]


def handle(ctx: CliContext, args: argparse.Namespace) -> MutableMapping[str, Any]:
    try:
        builder = bootstrap_builder(config_path=getattr(args, "config", None))
    except ConfigError as exc:
        ctx.error(str(exc))
        return {"status": "error", "message": str(exc), "exit_code": EXIT_CONFIG}

    result: Dict[str, Any] = {"status": "ok", "exit_code": EXIT_OK}
    if args.command == "info":
        snapshot = builder.build_snapshot()
        result["info"] = snapshot.as_dict()
        lines = render_snapshot(snapshot)
    else:
        version = builder.system_version()
        result["version"] = version.as_dict()
        lines = render_version(version)

    if not ctx.json_mode:
        for line in lines:
            ctx.emit(line)
    return result

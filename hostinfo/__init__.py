"""
hostinfo: diagnostic snapshots of a container host.

``SnapshotBuilder.build_snapshot`` gathers kernel, OS, memory, security and
container facts together with the versions of the external components the
host runs, and returns one immutable ``Snapshot``. Every individual source
may fail; the snapshot is still produced with that source's placeholder.
"""

from __future__ import annotations

from .assembler import FactCollectors, SnapshotBuilder
from .buildinfo import BuildInfo
from .config import DaemonConfig, load_config
from .errors import CommandError, ConfigError, HostInfoError, ProbeError, ServiceError
from .model import (
    NOT_AVAILABLE,
    UNKNOWN,
    ComponentVersion,
    EntityCounts,
    HostFacts,
    SecurityOption,
    Snapshot,
    VersionInfo,
)
from .platforms import PlatformCapabilities, detect_capabilities

__all__ = [
    "BuildInfo",
    "CommandError",
    "ComponentVersion",
    "ConfigError",
    "DaemonConfig",
    "EntityCounts",
    "FactCollectors",
    "HostFacts",
    "HostInfoError",
    "NOT_AVAILABLE",
    "PlatformCapabilities",
    "ProbeError",
    "SecurityOption",
    "ServiceError",
    "Snapshot",
    "SnapshotBuilder",
    "UNKNOWN",
    "VersionInfo",
    "detect_capabilities",
    "load_config",
]

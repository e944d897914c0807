"""
Immutable records describing a diagnostic snapshot.

Every record is a frozen dataclass. Sequences are stored as tuples and
mappings as read-only proxies, so a snapshot handed to a consumer cannot be
altered. ``as_dict`` renders plain data for whatever layer serialises it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

UNKNOWN = "<unknown>"
NOT_AVAILABLE = "N/A"

PAUSED = "paused"
RUNNING = "running"
STOPPED = "stopped"


def local_timestamp() -> str:
    return datetime.now().astimezone().isoformat()


def frozen_mapping(values: Optional[Mapping[str, Any]] = None) -> Mapping[str, Any]:
    return MappingProxyType(dict(values or {}))


def _plain(value: Any) -> Any:
    if hasattr(value, "as_dict"):
        return value.as_dict()
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (tuple, list)):
        return [_plain(item) for item in value]
    return value


class _Record:
    def as_dict(self) -> Dict[str, Any]:
        return {f.name: _plain(getattr(self, f.name)) for f in fields(self)}  # type: ignore[arg-type]


@dataclass(frozen=True)
class KernelVersion(_Record):
    kernel: int
    major: int
    minor: int
    flavor: str = ""

    def __str__(self) -> str:
        return f"{self.kernel}.{self.major}.{self.minor}{self.flavor}"


@dataclass(frozen=True)
class MemInfo(_Record):
    mem_total: int = 0
    mem_free: int = 0
    swap_total: int = 0
    swap_free: int = 0


@dataclass(frozen=True)
class SysInfo(_Record):
    """Host kernel features relevant to container isolation."""

    apparmor: bool = False
    seccomp: bool = False
    selinux: bool = False
    memory_limit: bool = False
    swap_limit: bool = False
    kernel_memory: bool = False
    oom_kill_disable: bool = False
    cpu_cfs_period: bool = False
    cpu_cfs_quota: bool = False
    cpu_shares: bool = False
    cpuset: bool = False
    ipv4_forwarding_disabled: bool = False
    bridge_nf_call_iptables_disabled: bool = False
    bridge_nf_call_ip6tables_disabled: bool = False

    def security_capabilities(self) -> Tuple[str, ...]:
        detected = (("apparmor", self.apparmor), ("seccomp", self.seccomp), ("selinux", self.selinux))
        return tuple(name for name, present in detected if present)


@dataclass(frozen=True)
class ResourceLimits(_Record):
    memory_limit: bool = False
    swap_limit: bool = False
    kernel_memory: bool = False
    oom_kill_disable: bool = False
    cpu_cfs_period: bool = False
    cpu_cfs_quota: bool = False
    cpu_shares: bool = False
    cpuset: bool = False

    @classmethod
    def from_sysinfo(cls, info: SysInfo) -> "ResourceLimits":
        return cls(
            memory_limit=info.memory_limit,
            swap_limit=info.swap_limit,
            kernel_memory=info.kernel_memory,
            oom_kill_disable=info.oom_kill_disable,
            cpu_cfs_period=info.cpu_cfs_period,
            cpu_cfs_quota=info.cpu_cfs_quota,
            cpu_shares=info.cpu_shares,
            cpuset=info.cpuset,
        )


@dataclass(frozen=True)
class HostFacts(_Record):
    kernel_version: str = UNKNOWN
    operating_system: str = UNKNOWN
    containerized: Optional[bool] = None
    memory: MemInfo = field(default_factory=MemInfo)
    security_capabilities: Tuple[str, ...] = ()


@dataclass(frozen=True)
class EntityCounts(_Record):
    running: int = 0
    paused: int = 0
    stopped: int = 0

    @property
    def total(self) -> int:
        return self.running + self.paused + self.stopped

    def as_dict(self) -> Dict[str, Any]:
        payload = super().as_dict()
        payload["total"] = self.total
        return payload


@dataclass(frozen=True)
class ComponentVersion(_Record):
    expected: str
    observed: str = NOT_AVAILABLE

    @property
    def available(self) -> bool:
        return self.observed != NOT_AVAILABLE


@dataclass(frozen=True)
class SecurityOption(_Record):
    key: str
    value: str


@dataclass(frozen=True)
class PluginsInfo(_Record):
    volume: Tuple[str, ...] = ()
    network: Tuple[str, ...] = ()
    authorization: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Snapshot(_Record):
    """
    Complete diagnostic report for one call of the snapshot builder.

    Fields gated by platform (``limits``, ``components``, ``runtimes``,
    ``default_runtime``, ``init_binary``) keep their zero value where the
    host has no mechanism to measure them; a zero there is not a reading.
    """

    id: str
    name: str
    host: HostFacts
    containers: EntityCounts
    images: int
    driver: str
    driver_status: Tuple[Tuple[str, str], ...]
    plugins: PluginsInfo
    security_options: Tuple[SecurityOption, ...]
    components: Mapping[str, ComponentVersion]
    limits: ResourceLimits
    ipv4_forwarding: bool
    bridge_nf_iptables: bool
    bridge_nf_ip6tables: bool
    debug: bool
    n_fd: int
    n_threads: int
    system_time: str
    logging_driver: str
    cgroup_driver: str
    n_events_listener: int
    index_server_address: str
    os_type: str
    architecture: str
    ncpu: int
    root_dir: str
    labels: Tuple[str, ...]
    experimental_build: bool
    server_version: str
    git_commit: str
    api_version: str
    build_time: str
    cluster_store: str
    cluster_advertise: str
    http_proxy: str
    https_proxy: str
    no_proxy: str
    live_restore_enabled: bool
    isolation: str
    registry_mirrors: Tuple[str, ...]
    insecure_registries: Tuple[str, ...]
    runtimes: Mapping[str, str]
    default_runtime: str
    init_binary: str

    @property
    def kernel_version(self) -> str:
        return self.host.kernel_version

    @property
    def operating_system(self) -> str:
        return self.host.operating_system

    @property
    def mem_total(self) -> int:
        return self.host.memory.mem_total


@dataclass(frozen=True)
class VersionInfo(_Record):
    version: str
    git_commit: str
    api_version: str
    min_api_version: str
    python_version: str
    os: str
    arch: str
    kernel_version: str
    build_time: str
    experimental: bool

"""
Snapshot assembly.

``SnapshotBuilder`` asks every probe and collaborator exactly once per call,
substitutes a placeholder for anything that fails, and returns an immutable
``Snapshot``. ``build_snapshot`` never raises.
"""

from __future__ import annotations

import logging
import platform
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

from . import probes
from .buildinfo import BuildInfo
from .collaborators import (
    EntityStore,
    EventsService,
    IdentityMapping,
    ImageStore,
    LayerStore,
    PluginRegistry,
    ServiceClient,
)
from .config import DaemonConfig
from .model import (
    NOT_AVAILABLE,
    UNKNOWN,
    ComponentVersion,
    HostFacts,
    MemInfo,
    PluginsInfo,
    ResourceLimits,
    SecurityOption,
    Snapshot,
    SysInfo,
    VersionInfo,
    frozen_mapping,
    local_timestamp,
)
from .platforms import PlatformCapabilities, detect_capabilities
from .sysinfo import probe_sysinfo
from .tally import tally_entities
from .versions import (
    CommandRunner,
    resolve_containerd_commit,
    resolve_init_commit,
    resolve_runtime_commit,
    run_version_command,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONTAINERIZED_SUFFIX = " (containerized)"
CONTAINERIZED_ERROR_SUFFIX = " (error determining if containerized)"


@dataclass(frozen=True)
class FactCollectors:
    """Zero-argument host probes; each may raise."""

    kernel_version: Callable[[], Any] = probes.get_kernel_version
    operating_system: Callable[[], str] = probes.get_operating_system
    is_containerized: Callable[[], bool] = probes.is_containerized
    meminfo: Callable[[], MemInfo] = probes.read_meminfo
    sysinfo: Callable[[], SysInfo] = probe_sysinfo
    hostname: Callable[[], str] = probes.get_hostname
    num_cpu: Callable[[], int] = probes.num_cpu
    used_fds: Callable[[], int] = probes.used_fds
    thread_count: Callable[[], int] = threading.active_count
    architecture: Callable[[], str] = platform.machine
    clock: Callable[[], str] = local_timestamp
    proxy_env: Callable[[str], str] = probes.proxy_env


def _attempt(description: str, probe: Callable[[], T], placeholder: T, level: int = logging.WARNING) -> T:
    try:
        return probe()
    except Exception as exc:  # noqa: BLE001
        logger.log(level, "Could not %s: %s", description, exc)
        return placeholder


class SnapshotBuilder:
    def __init__(
        self,
        *,
        config: DaemonConfig,
        containers: EntityStore,
        images: ImageStore,
        layers: LayerStore,
        volume_plugins: PluginRegistry,
        network_plugins: PluginRegistry,
        events: EventsService,
        containerd: ServiceClient,
        identity: IdentityMapping,
        collectors: Optional[FactCollectors] = None,
        capabilities: Optional[PlatformCapabilities] = None,
        build: Optional[BuildInfo] = None,
        runner: CommandRunner = run_version_command,
    ) -> None:
        self.config = config
        self.containers = containers
        self.images = images
        self.layers = layers
        self.volume_plugins = volume_plugins
        self.network_plugins = network_plugins
        self.events = events
        self.containerd = containerd
        self.identity = identity
        self.collectors = collectors or FactCollectors()
        self.capabilities = capabilities or detect_capabilities()
        self.build = build or BuildInfo()
        self.runner = runner

    def _kernel_version(self) -> str:
        return _attempt("get kernel version", lambda: str(self.collectors.kernel_version()), UNKNOWN)

    def _operating_system(self) -> Tuple[str, Optional[bool]]:
        name = _attempt("get operating system name", self.collectors.operating_system, UNKNOWN)
        if not self.capabilities.containerized_check:
            return name, None
        try:
            in_container = bool(self.collectors.is_containerized())
        except Exception as exc:  # noqa: BLE001
            logger.error("Could not determine if daemon is containerized: %s", exc)
            return name + CONTAINERIZED_ERROR_SUFFIX, None
        if in_container:
            name += CONTAINERIZED_SUFFIX
        return name, in_container

    def _sysinfo(self) -> SysInfo:
        if not self.capabilities.host_sysinfo:
            return SysInfo()
        return _attempt("probe host kernel features", self.collectors.sysinfo, SysInfo(), logging.ERROR)

    def _host_facts(self, info: SysInfo) -> HostFacts:
        operating_system, containerized = self._operating_system()
        memory = _attempt("read system memory info", self.collectors.meminfo, MemInfo(), logging.ERROR)
        return HostFacts(
            kernel_version=self._kernel_version(),
            operating_system=operating_system,
            containerized=containerized,
            memory=memory,
            security_capabilities=info.security_capabilities(),
        )

    def _security_options(self, info: SysInfo) -> Tuple[SecurityOption, ...]:
        # Consumers read these positionally; keep the order fixed.
        options = []
        if info.apparmor:
            options.append(SecurityOption("Name", "apparmor"))
        if info.seccomp and self.capabilities.seccomp:
            profile = self.config.seccomp_profile or "default"
            options.append(SecurityOption("Name", "seccomp"))
            options.append(SecurityOption("Profile", profile))
        if info.selinux:
            options.append(SecurityOption("Name", "selinux"))
        uid, gid = _attempt("look up remapped root", self._remapped_root, (0, 0))
        if uid != 0 or gid != 0:
            options.append(SecurityOption("Name", "userns"))
        return tuple(options)

    def _remapped_root(self) -> Tuple[int, int]:
        uid, gid = self.identity.remapped_root()
        return int(uid), int(gid)

    def _components(self) -> Dict[str, ComponentVersion]:
        build = self.build
        resolvers = (
            ("containerd", build.containerd_commit, lambda: resolve_containerd_commit(self.containerd, build.containerd_commit)),
            (
                "runtime",
                build.runtime_commit,
                lambda: resolve_runtime_commit(self.config.runtime_binary, build.runtime_commit, self.runner),
            ),
            (
                "init",
                build.init_commit,
                lambda: resolve_init_commit(self.config.get_init_path(), build.init_commit, self.runner),
            ),
        )
        components: Dict[str, ComponentVersion] = {}
        for name, expected, resolve in resolvers:
            components[name] = _attempt(
                f"retrieve {name} version",
                resolve,
                ComponentVersion(expected=expected, observed=NOT_AVAILABLE),
            )
        return components

    def _plugins(self) -> PluginsInfo:
        return PluginsInfo(
            volume=_attempt("list volume plugins", lambda: tuple(self.volume_plugins.driver_names()), ()),
            network=_attempt("list network plugins", lambda: tuple(self.network_plugins.driver_names()), ()),
            authorization=tuple(self.config.authorization_plugins),
        )

    def _driver_status(self) -> Tuple[Tuple[str, str], ...]:
        return tuple((str(key), str(value)) for key, value in self.layers.driver_status())

    def build_snapshot(self) -> Snapshot:
        caps = self.capabilities
        config = self.config
        build = self.build
        collectors = self.collectors

        info = self._sysinfo()
        host = self._host_facts(info)
        containers = tally_entities(self.containers)
        security_options = self._security_options(info)

        limits = ResourceLimits()
        components: Dict[str, ComponentVersion] = {}
        runtimes: Dict[str, str] = {}
        default_runtime = ""
        init_binary = ""
        if caps.resource_limits:
            limits = ResourceLimits.from_sysinfo(info)
        if caps.default_runtime:
            runtimes = config.get_all_runtimes()
            default_runtime = config.get_default_runtime_name()
            init_binary = config.get_init_path()
        if caps.component_versions:
            components = self._components()

        n_fd = -1
        if caps.open_fds:
            n_fd = _attempt("count open file descriptors", collectors.used_fds, -1, logging.ERROR)

        snapshot = Snapshot(
            id=config.id,
            name=_attempt("get hostname", collectors.hostname, ""),
            host=host,
            containers=containers,
            images=_attempt("count images", self.images.count, 0),
            driver=_attempt("get storage driver name", self.layers.driver_name, ""),
            driver_status=_attempt("get storage driver status", self._driver_status, ()),
            plugins=self._plugins(),
            security_options=security_options,
            components=frozen_mapping(components),
            limits=limits,
            ipv4_forwarding=not info.ipv4_forwarding_disabled,
            bridge_nf_iptables=not info.bridge_nf_call_iptables_disabled,
            bridge_nf_ip6tables=not info.bridge_nf_call_ip6tables_disabled,
            debug=config.debug,
            n_fd=n_fd,
            n_threads=_attempt("count threads", collectors.thread_count, 0),
            system_time=_attempt("read system time", collectors.clock, ""),
            logging_driver=config.logging_driver,
            cgroup_driver=config.cgroup_driver,
            n_events_listener=_attempt("count event listeners", self.events.subscribers_count, 0),
            index_server_address=build.index_server,
            os_type=caps.os_type,
            architecture=_attempt("get architecture", collectors.architecture, ""),
            ncpu=_attempt("count CPUs", collectors.num_cpu, 0),
            root_dir=config.root,
            labels=tuple(config.labels),
            experimental_build=config.experimental,
            server_version=build.version,
            git_commit=build.git_commit,
            api_version=build.api_version,
            build_time=build.build_time,
            cluster_store=config.cluster_store,
            cluster_advertise=config.cluster_advertise,
            http_proxy=_attempt("read http_proxy", lambda: collectors.proxy_env("http_proxy"), ""),
            https_proxy=_attempt("read https_proxy", lambda: collectors.proxy_env("https_proxy"), ""),
            no_proxy=_attempt("read no_proxy", lambda: collectors.proxy_env("no_proxy"), ""),
            live_restore_enabled=config.live_restore,
            isolation=config.isolation,
            registry_mirrors=tuple(config.registry_mirrors),
            insecure_registries=tuple(config.insecure_registries),
            runtimes=frozen_mapping(runtimes),
            default_runtime=default_runtime,
            init_binary=init_binary,
        )
        logger.debug("Snapshot built: %d containers, %d images", containers.total, snapshot.images)
        return snapshot

    def system_version(self) -> VersionInfo:
        build = self.build
        return VersionInfo(
            version=build.version,
            git_commit=build.git_commit,
            api_version=build.api_version,
            min_api_version=build.min_api_version,
            python_version=platform.python_version(),
            os=self.capabilities.os_type,
            arch=_attempt("get architecture", self.collectors.architecture, ""),
            kernel_version=self._kernel_version(),
            build_time=build.build_time,
            experimental=self.config.experimental,
        )

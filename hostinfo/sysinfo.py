"""
Kernel feature detection: security modules, cgroup controllers, forwarding.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Set

from .errors import ProbeError
from .model import SysInfo

logger = logging.getLogger(__name__)

SYS_ROOT = Path("/sys")
PROC_ROOT = Path("/proc")


def _read_bool(path: Path) -> bool:
    try:
        value = path.read_text(encoding="utf-8").strip()
    except OSError:
        return False
    return value in ("1", "Y", "y")


def _apparmor_enabled(sys_root: Path) -> bool:
    if not (sys_root / "kernel" / "security" / "apparmor").is_dir():
        return False
    return _read_bool(sys_root / "module" / "apparmor" / "parameters" / "enabled")


def _seccomp_supported(proc_root: Path) -> bool:
    try:
        status = (proc_root / "self" / "status").read_text(encoding="utf-8")
    except OSError:
        return False
    return any(line.startswith("Seccomp:") for line in status.splitlines())


def _selinux_enabled(sys_root: Path) -> bool:
    return (sys_root / "fs" / "selinux" / "enforce").exists()


def _cgroup_v2_controllers(cgroup_root: Path) -> Set[str] | None:
    try:
        return set((cgroup_root / "cgroup.controllers").read_text(encoding="utf-8").split())
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise ProbeError("cgroup", str(exc)) from exc


def _cgroup_features(cgroup_root: Path) -> Dict[str, bool]:
    controllers = _cgroup_v2_controllers(cgroup_root)
    if controllers is not None:
        cpu = "cpu" in controllers
        return {
            "memory_limit": "memory" in controllers,
            "swap_limit": "memory" in controllers,
            "kernel_memory": False,
            "oom_kill_disable": False,
            "cpu_cfs_period": cpu,
            "cpu_cfs_quota": cpu,
            "cpu_shares": cpu,
            "cpuset": "cpuset" in controllers,
        }

    memory = cgroup_root / "memory"
    cpu = cgroup_root / "cpu"
    cpuset = cgroup_root / "cpuset"
    return {
        "memory_limit": memory.is_dir(),
        "swap_limit": (memory / "memory.memsw.limit_in_bytes").exists(),
        "kernel_memory": (memory / "memory.kmem.limit_in_bytes").exists(),
        "oom_kill_disable": (memory / "memory.oom_control").exists(),
        "cpu_cfs_period": (cpu / "cpu.cfs_period_us").exists(),
        "cpu_cfs_quota": (cpu / "cpu.cfs_quota_us").exists(),
        "cpu_shares": (cpu / "cpu.shares").exists(),
        "cpuset": (cpuset / "cpuset.cpus").exists() and (cpuset / "cpuset.mems").exists(),
    }


def probe_sysinfo(sys_root: Path = SYS_ROOT, proc_root: Path = PROC_ROOT) -> SysInfo:
    sys_root = Path(sys_root)
    proc_root = Path(proc_root)
    if not sys_root.is_dir() or not proc_root.is_dir():
        raise ProbeError("sysinfo", f"{sys_root} or {proc_root} is not mounted")

    cgroup = _cgroup_features(sys_root / "fs" / "cgroup")
    for feature, present in cgroup.items():
        if not present:
            logger.debug("cgroup feature %s not supported", feature)

    net = proc_root / "sys" / "net"
    return SysInfo(
        apparmor=_apparmor_enabled(sys_root),
        seccomp=_seccomp_supported(proc_root),
        selinux=_selinux_enabled(sys_root),
        ipv4_forwarding_disabled=not _read_bool(net / "ipv4" / "ip_forward"),
        bridge_nf_call_iptables_disabled=not _read_bool(net / "bridge" / "bridge-nf-call-iptables"),
        bridge_nf_call_ip6tables_disabled=not _read_bool(net / "bridge" / "bridge-nf-call-ip6tables"),
        **cgroup,
    )

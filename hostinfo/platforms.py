"""
Per-platform capability descriptor.

The assembler consults one descriptor instead of checking the operating
system at each platform-dependent field.
"""

from __future__ import annotations

import platform
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PlatformCapabilities:
    os_type: str
    containerized_check: bool = False
    host_sysinfo: bool = False
    seccomp: bool = False
    resource_limits: bool = False
    component_versions: bool = False
    default_runtime: bool = False
    open_fds: bool = False


LINUX = PlatformCapabilities(
    os_type="linux",
    containerized_check=True,
    host_sysinfo=True,
    seccomp=True,
    resource_limits=True,
    component_versions=True,
    default_runtime=True,
    open_fds=True,
)
WINDOWS = PlatformCapabilities(os_type="windows")


def detect_capabilities(system: Optional[str] = None) -> PlatformCapabilities:
    os_type = (system or platform.system()).lower()
    if os_type == "linux":
        return LINUX
    if os_type == "windows":
        return WINDOWS
    # Other unix hosts expose neither /proc cgroup views nor security modules.
    return PlatformCapabilities(os_type=os_type)

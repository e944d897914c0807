"""
Daemon configuration consumed by the snapshot builder.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV = "HOSTINFO_CONFIG"
DEFAULT_RUNTIME = "runc"
DEFAULT_RUNTIME_BINARY = "docker-runc"
DEFAULT_INIT_BINARY = "docker-init"


@dataclass(frozen=True)
class DaemonConfig:
    id: str = ""
    root: str = "/var/lib/docker"
    labels: List[str] = field(default_factory=list)
    debug: bool = False
    experimental: bool = False
    cluster_store: str = ""
    cluster_advertise: str = ""
    live_restore: bool = False
    isolation: str = ""
    logging_driver: str = "json-file"
    cgroup_driver: str = "cgroupfs"
    storage_driver: str = "overlay2"
    seccomp_profile: str = ""
    runtimes: Dict[str, str] = field(default_factory=dict)
    default_runtime: str = DEFAULT_RUNTIME
    runtime_binary: str = DEFAULT_RUNTIME_BINARY
    init_path: str = ""
    authorization_plugins: List[str] = field(default_factory=list)
    volume_drivers: List[str] = field(default_factory=lambda: ["local"])
    network_drivers: List[str] = field(default_factory=lambda: ["bridge", "host", "null", "overlay"])
    registry_mirrors: List[str] = field(default_factory=list)
    insecure_registries: List[str] = field(default_factory=list)
    containerd_address: str = ""
    userns_remap: str = ""

    def get_all_runtimes(self) -> Dict[str, str]:
        runtimes = dict(self.runtimes)
        runtimes.setdefault(DEFAULT_RUNTIME, self.runtime_binary)
        return runtimes

    def get_default_runtime_name(self) -> str:
        return self.default_runtime or DEFAULT_RUNTIME

    def get_init_path(self) -> str:
        return self.init_path or DEFAULT_INIT_BINARY


_FIELDS = {f.name: f for f in fields(DaemonConfig)}


def _coerce(source: str, key: str, value: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigError(source, f"'{key}' must be a boolean")
        return value
    if isinstance(default, list):
        if not isinstance(value, list):
            raise ConfigError(source, f"'{key}' must be a list")
        return [str(item) for item in value]
    if isinstance(default, dict):
        if not isinstance(value, dict):
            raise ConfigError(source, f"'{key}' must be a mapping")
        return {str(k): str(v) for k, v in value.items()}
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ConfigError(source, f"'{key}' must be a string")
    return str(value)


def config_from_mapping(raw: Mapping[str, Any], source: str = "<mapping>") -> DaemonConfig:
    config = DaemonConfig()
    updates: Dict[str, Any] = {}
    for key, value in raw.items():
        if key not in _FIELDS:
            logger.warning("Ignoring unknown configuration key %r in %s", key, source)
            continue
        updates[key] = _coerce(source, key, value, getattr(config, key))
    if "userns_remap" in updates:
        _validate_remap(source, updates["userns_remap"])
    return replace(config, **updates)


def _validate_remap(source: str, remap: str) -> None:
    if not remap:
        return
    for part in remap.split(":", 1):
        if not part.isdigit():
            raise ConfigError(source, f"'userns_remap' must be uid[:gid], got {remap!r}")


def load_config(path: Path | str) -> DaemonConfig:
    path = Path(path)
    if not path.exists():
        logger.debug("Configuration %s not found, using defaults", path)
        return DaemonConfig()
    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(str(path), str(exc)) from exc
    if not isinstance(raw, dict):
        raise ConfigError(str(path), "top level must be a mapping")
    return config_from_mapping(raw, source=str(path))


def resolve_config_path(explicit: Optional[str] = None) -> Optional[Path]:
    candidate = explicit or os.getenv(CONFIG_ENV)
    return Path(candidate).expanduser() if candidate else None

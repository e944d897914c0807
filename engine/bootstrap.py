"""
Wires a SnapshotBuilder from daemon configuration.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from hostinfo.assembler import SnapshotBuilder
from hostinfo.collaborators import (
    EntityStore,
    EventsBroker,
    HttpServiceClient,
    MemoryStore,
    ServiceClient,
    StaticIdentityMapping,
    StaticImageStore,
    StaticLayerStore,
    StaticPluginRegistry,
    UnavailableServiceClient,
)
from hostinfo.config import DaemonConfig, load_config, resolve_config_path

logger = logging.getLogger(__name__)


def _service_client(config: DaemonConfig) -> ServiceClient:
    if config.containerd_address:
        return HttpServiceClient(config.containerd_address)
    return UnavailableServiceClient("containerd_address not configured")


def bootstrap_builder(
    config: Optional[DaemonConfig] = None,
    *,
    containers: Optional[EntityStore] = None,
    config_path: Optional[str] = None,
) -> SnapshotBuilder:
    """
    Build a SnapshotBuilder with the in-process collaborators.

    When ``config`` is omitted it is loaded from ``config_path`` or the
    ``HOSTINFO_CONFIG`` environment variable; without either the defaults
    apply. Raises ``ConfigError`` for an unreadable or malformed file.
    """

    if config is None:
        path: Optional[Path] = resolve_config_path(config_path)
        config = load_config(path) if path else DaemonConfig()
        logger.debug("Using configuration from %s", path or "defaults")

    return SnapshotBuilder(
        config=config,
        containers=containers if containers is not None else MemoryStore(),
        images=StaticImageStore(),
        layers=StaticLayerStore(config.storage_driver),
        volume_plugins=StaticPluginRegistry(config.volume_drivers),
        network_plugins=StaticPluginRegistry(config.network_drivers),
        events=EventsBroker(),
        containerd=_service_client(config),
        identity=StaticIdentityMapping.parse(config.userns_remap),
    )

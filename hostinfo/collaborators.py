"""
Interfaces the snapshot builder consumes, plus small in-process implementations.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

import requests

from .errors import ServiceError

HEADERS = {
    "Accept": "application/json",
    "User-Agent": "hostinfo/1.0",
}


class Entity(Protocol):
    def state_string(self) -> str:
        ...


class EntityStore(Protocol):
    def apply_all(self, fn: Callable[[Entity], None]) -> None:
        ...


class ImageStore(Protocol):
    def count(self) -> int:
        ...


class LayerStore(Protocol):
    def driver_name(self) -> str:
        ...

    def driver_status(self) -> Sequence[Tuple[str, str]]:
        ...


class PluginRegistry(Protocol):
    def driver_names(self) -> Sequence[str]:
        ...


class EventsService(Protocol):
    def subscribers_count(self) -> int:
        ...


class IdentityMapping(Protocol):
    def remapped_root(self) -> Tuple[int, int]:
        ...


@dataclass(frozen=True)
class ServerVersion:
    version: str
    revision: str


class ServiceClient(Protocol):
    def server_version(self) -> ServerVersion:
        ...


@dataclass
class Container:
    id: str
    state: str = "created"

    def state_string(self) -> str:
        return self.state


class MemoryStore:
    """Thread-safe container store whose traversal fans out to a worker pool."""

    def __init__(self, containers: Iterable[Container] = (), max_workers: Optional[int] = None) -> None:
        self._containers: Dict[str, Container] = {c.id: c for c in containers}
        self._lock = threading.Lock()
        self._max_workers = max_workers

    def add(self, container: Container) -> None:
        with self._lock:
            self._containers[container.id] = container

    def delete(self, container_id: str) -> None:
        with self._lock:
            self._containers.pop(container_id, None)

    def get(self, container_id: str) -> Optional[Container]:
        with self._lock:
            return self._containers.get(container_id)

    def size(self) -> int:
        with self._lock:
            return len(self._containers)

    def apply_all(self, fn: Callable[[Container], None]) -> None:
        # The lock only guards the copy; callbacks run without it.
        with self._lock:
            containers = list(self._containers.values())
        if not containers:
            return
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = [pool.submit(fn, container) for container in containers]
            for future in futures:
                future.result()


class StaticImageStore:
    def __init__(self, images: Iterable[Any] = ()) -> None:
        self._images = list(images)

    def count(self) -> int:
        return len(self._images)


class StaticLayerStore:
    def __init__(self, driver: str, status: Iterable[Tuple[str, str]] = ()) -> None:
        self._driver = driver
        self._status = [(str(k), str(v)) for k, v in status]

    def driver_name(self) -> str:
        return self._driver

    def driver_status(self) -> List[Tuple[str, str]]:
        return list(self._status)


class StaticPluginRegistry:
    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names = list(names)

    def driver_names(self) -> List[str]:
        return sorted(self._names)


class EventsBroker:
    def __init__(self) -> None:
        self._subscribers: Dict[int, Callable[[Any], None]] = {}
        self._next_id = 0
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[Any], None]) -> int:
        with self._lock:
            self._next_id += 1
            self._subscribers[self._next_id] = callback
            return self._next_id

    def unsubscribe(self, token: int) -> None:
        with self._lock:
            self._subscribers.pop(token, None)

    def publish(self, event: Any) -> None:
        with self._lock:
            callbacks = list(self._subscribers.values())
        for callback in callbacks:
            callback(event)

    def subscribers_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


@dataclass(frozen=True)
class StaticIdentityMapping:
    uid: int = 0
    gid: int = 0

    @classmethod
    def parse(cls, remap: str) -> "StaticIdentityMapping":
        """Parse ``uid:gid`` (or a bare ``uid`` used for both)."""
        if not remap:
            return cls()
        uid, _, gid = remap.partition(":")
        uid_value = int(uid)
        return cls(uid=uid_value, gid=int(gid) if gid else uid_value)

    def remapped_root(self) -> Tuple[int, int]:
        return self.uid, self.gid


class HttpServiceClient:
    """Queries a component daemon's ``/version`` endpoint over HTTP."""

    def __init__(self, address: str, timeout: float = 10.0, session: Optional[requests.Session] = None) -> None:
        self.address = address.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def server_version(self) -> ServerVersion:
        url = f"{self.address}/version"
        try:
            response = self._session.get(url, headers=HEADERS, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise ServiceError(f"GET {url} failed: {exc}") from exc
        if not isinstance(payload, dict):
            raise ServiceError(f"GET {url} returned unexpected payload")
        revision = str(payload.get("revision") or "").strip()
        if not revision:
            raise ServiceError(f"GET {url} returned no revision")
        return ServerVersion(version=str(payload.get("version") or ""), revision=revision)


class UnavailableServiceClient:
    def __init__(self, reason: str = "no service address configured") -> None:
        self.reason = reason

    def server_version(self) -> ServerVersion:
        raise ServiceError(self.reason)

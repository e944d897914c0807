"""
Exceptions raised by hostinfo probes, command runners and configuration.
"""

from __future__ import annotations


class HostInfoError(RuntimeError):
    pass


class ProbeError(HostInfoError):
    def __init__(self, probe: str, reason: str) -> None:
        super().__init__(f"{probe}: {reason}")
        self.probe = probe
        self.reason = reason


class CommandError(HostInfoError):
    def __init__(self, binary: str, reason: str) -> None:
        super().__init__(f"{binary}: {reason}")
        self.binary = binary
        self.reason = reason


class ServiceError(HostInfoError):
    pass


class ConfigError(HostInfoError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Invalid configuration {path}: {reason}")
        self.path = path
        self.reason = reason

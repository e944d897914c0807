"""
Static build metadata. Release builds rewrite the module-level constants.
"""

from __future__ import annotations

from dataclasses import dataclass

VERSION = "0.3.0-dev"
GIT_COMMIT = "library-import"
BUILD_TIME = ""
API_VERSION = "1.26"
MIN_API_VERSION = "1.12"

# Commits of the external components this build was tested against.
CONTAINERD_COMMIT_ID = "03e5862ec0d8d3b3f750e19fca3ee367e13c090e"
RUNTIME_COMMIT_ID = "51371867a01c467f08af739783b8beafc154c4d7"
INIT_COMMIT_ID = "949e6facb77383876aeff8a6944dde66b3089574"

INDEX_SERVER = "https://index.docker.io/v1/"


@dataclass(frozen=True)
class BuildInfo:
    version: str = VERSION
    git_commit: str = GIT_COMMIT
    build_time: str = BUILD_TIME
    api_version: str = API_VERSION
    min_api_version: str = MIN_API_VERSION
    containerd_commit: str = CONTAINERD_COMMIT_ID
    runtime_commit: str = RUNTIME_COMMIT_ID
    init_commit: str = INIT_COMMIT_ID
    index_server: str = INDEX_SERVER

"""Data models for the image metadata documents.

``to_dict`` on each model returns the exact field set and order container
tooling expects. Unset optional fields serialize as an explicit ``null``.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass
class ContainerConfig:
    """Runtime configuration block (``config`` / ``container_config``)."""

    hostname: str = ""
    domainname: str = ""
    user: str = ""
    attach_stdin: bool = False
    attach_stdout: bool = False
    attach_stderr: bool = False
    tty: bool = False
    open_stdin: bool = False
    stdin_once: bool = False
    env: Optional[List[str]] = None
    cmd: Optional[List[str]] = None
    image: str = ""
    volumes: Optional[dict[str, Any]] = None
    working_dir: str = ""
    entrypoint: Optional[List[str]] = None
    on_build: Optional[List[str]] = None
    labels: Optional[dict[str, str]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "Hostname": self.hostname,
            "Domainname": self.domainname,
            "User": self.user,
            "AttachStdin": self.attach_stdin,
            "AttachStdout": self.attach_stdout,
            "AttachStderr": self.attach_stderr,
            "Tty": self.tty,
            "OpenStdin": self.open_stdin,
            "StdinOnce": self.stdin_once,
            "Env": self.env,
            "Cmd": self.cmd,
            "Image": self.image,
            "Volumes": self.volumes,
            "WorkingDir": self.working_dir,
            "Entrypoint": self.entrypoint,
            "OnBuild": self.on_build,
            "Labels": self.labels,
        }


@dataclass
class LayerMetadata:
    """Per-layer ``json`` document."""

    id: str
    created: str
    config: ContainerConfig
    container_config: ContainerConfig = field(default_factory=ContainerConfig)
    architecture: str = "amd64"
    os: str = "windows"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "created": self.created,
            "container_config": self.container_config.to_dict(),
            "config": self.config.to_dict(),
            "architecture": self.architecture,
            "os": self.os,
        }


@dataclass
class HistoryEntry:
    """One entry of the image config ``history`` list."""

    created: str

    def to_dict(self) -> dict[str, Any]:
        return {"created": self.created}


@dataclass
class RootFS:
    """The ``rootfs`` block linking the image config to its layers."""

    diff_ids: List[str]
    type: str = "layers"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "diff_ids": list(self.diff_ids)}


@dataclass
class ImageConfig:
    """Top-level image config, stored as ``<configHash>.json``."""

    created: str
    config: ContainerConfig
    rootfs: RootFS
    history: List[HistoryEntry]
    architecture: str = "amd64"
    os: str = "windows"

    def to_dict(self) -> dict[str, Any]:
        return {
            "architecture": self.architecture,
            "config": self.config.to_dict(),
            "created": self.created,
            "history": [entry.to_dict() for entry in self.history],
            "os": self.os,
            "rootfs": self.rootfs.to_dict(),
        }


@dataclass
class ManifestEntry:
    """One element of ``manifest.json``."""

    config: str
    layers: List[str]
    repo_tags: List[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        entry: dict[str, Any] = {"Config": self.config}
        if self.repo_tags:
            entry["RepoTags"] = list(self.repo_tags)
        entry["Layers"] = list(self.layers)
        return entry


@dataclass
class LayerInfo:
    """Layer information read back from an image archive."""

    digest: str
    size: int
    tar_path: str


@dataclass
class ImageInfo:
    """Image information read back from an image archive."""

    config_digest: str
    layers: List[LayerInfo]
    diff_ids: List[str]
    architecture: str
    os: str
    created: str
    repo_tags: List[str]
    size: int
    archive_digest: str = ""

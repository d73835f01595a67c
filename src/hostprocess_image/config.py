"""Build configuration.

Every stage receives its paths and constants from a :class:`BuildConfig`
instead of relying on the working directory. Values can be loaded from
environment variables with :meth:`BuildConfig.from_env`.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_HIVE_NAMES = ("DEFAULT", "SAM", "SECURITY", "SOFTWARE", "SYSTEM")
DEFAULT_LICENSE_FILES = ("LICENSE", "NOTICE")

IMAGE_ARCHIVE_NAME = "windows-host-process-containers-base-image.tar"
IMAGE_ID_NAME = "image-id.txt"

# Path of the hive placeholders inside the layer, relative to the staging dir
HIVE_SUBPATH = ("Files", "Windows", "System32", "config")

ARCHIVERS = ("tarfile", "tar")


def _split_env(name: str, separator: str) -> list[str] | None:
    value = os.getenv(name)
    if value is None:
        return None
    return [item.strip() for item in value.split(separator) if item.strip()]


@dataclass
class BuildConfig:
    """Paths and image constants for one build.

    Attributes:
        build_dir: Root of all build output; purged at the start of a build
        license_files: Files copied into the root of the layer
        hive_names: Registry hive placeholders created under ``HIVE_SUBPATH``
        repo_tags: Optional ``RepoTags`` written to ``manifest.json``
        archiver: ``tarfile`` (in-process) or ``tar`` (host command)
        key_prefix: Prefix of the transient registry keys used for hive creation
    """

    build_dir: Path
    license_files: tuple[Path, ...] = ()
    hive_names: tuple[str, ...] = DEFAULT_HIVE_NAMES
    image_name: str = IMAGE_ARCHIVE_NAME
    image_id_name: str = IMAGE_ID_NAME
    architecture: str = "amd64"
    os_name: str = "windows"
    user: str = "ContainerUser"
    cmd: tuple[str, ...] = ("cmd.exe",)
    repo_tags: tuple[str, ...] = ()
    archiver: str = "tarfile"
    key_prefix: str = "HPC"

    def __post_init__(self) -> None:
        self.build_dir = Path(self.build_dir).absolute()
        self.license_files = tuple(Path(p).absolute() for p in self.license_files)
        self.hive_names = tuple(self.hive_names)
        self.cmd = tuple(self.cmd)
        self.repo_tags = tuple(self.repo_tags)
        if self.archiver not in ARCHIVERS:
            raise ValueError(
                f"Unknown archiver: {self.archiver} (expected one of {', '.join(ARCHIVERS)})"
            )

    @classmethod
    def from_env(cls, **overrides: Any) -> "BuildConfig":
        """Create a configuration from environment variables.

        Environment Variables:
            HPC_BUILD_DIR: Build output directory. Default: ./build
            HPC_LICENSE_FILES: License files, separated by os.pathsep.
                Default: LICENSE and NOTICE in the current directory
            HPC_IMAGE_TAGS: Comma separated repository tags. Default: none
            HPC_ARCHIVER: tarfile or tar. Default: tarfile

        Keyword arguments that are not None take precedence over the
        environment.
        """
        values: dict[str, Any] = {
            "build_dir": os.getenv("HPC_BUILD_DIR", "build"),
            "license_files": _split_env("HPC_LICENSE_FILES", os.pathsep)
            or list(DEFAULT_LICENSE_FILES),
            "repo_tags": _split_env("HPC_IMAGE_TAGS", ",") or [],
            "archiver": os.getenv("HPC_ARCHIVER", "tarfile"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def staging_dir(self) -> Path:
        return self.build_dir / "staging"

    @property
    def files_dir(self) -> Path:
        """Top-level directory of the staging tree; the sole layer entry."""
        return self.staging_dir / HIVE_SUBPATH[0]

    @property
    def hive_dir(self) -> Path:
        return self.staging_dir.joinpath(*HIVE_SUBPATH)

    @property
    def layer_tar(self) -> Path:
        return self.build_dir / "layer.tar"

    @property
    def image_dir(self) -> Path:
        return self.build_dir / "image"

    @property
    def image_archive(self) -> Path:
        return self.build_dir / self.image_name

    @property
    def image_id_file(self) -> Path:
        return self.build_dir / self.image_id_name

"""Builder for the Windows host process containers base image."""

__version__ = "0.1.0"

from .build import BuildResult, build_image
from .config import BuildConfig
from .exceptions import (
    ArchiveError,
    HiveCreationError,
    HiveValidationError,
    ImageBuildError,
    LicenseFileError,
    PrivilegeError,
    TarReadError,
    ValidationError,
)
from .image import ImageArchiveReader, inspect_image_archive
from .utils.digest import DigestComputer, calculate_file_digest
from .utils.validator import validate_docker_tar, verify_image_digests

__all__ = [
    "BuildConfig",
    "BuildResult",
    "build_image",
    "calculate_file_digest",
    "DigestComputer",
    "ImageArchiveReader",
    "inspect_image_archive",
    "validate_docker_tar",
    "verify_image_digests",
    "ImageBuildError",
    "PrivilegeError",
    "HiveCreationError",
    "HiveValidationError",
    "LicenseFileError",
    "ArchiveError",
    "ValidationError",
    "TarReadError",
]

"""Custom exceptions for the host process base image builder."""


class ImageBuildError(Exception):
    """Base exception for all image build errors."""

    pass


class PrivilegeError(ImageBuildError):
    """Raised when the build is started without the required privileges."""

    pass


class LicenseFileError(ImageBuildError):
    """Raised when a license file to include in the layer is missing."""

    pass


class HiveCreationError(ImageBuildError):
    """Raised when the host hive facility reports a failure."""

    pass


class HiveValidationError(ImageBuildError):
    """Raised when a hive file is missing or malformed after creation."""

    pass


class ArchiveError(ImageBuildError):
    """Raised when a tar archive cannot be written."""

    pass


class ValidationError(ImageBuildError):
    """Raised when an image archive fails validation."""

    pass


class TarReadError(ImageBuildError):
    """Raised when unable to read or parse an image archive."""

    pass

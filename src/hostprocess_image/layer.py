"""Layer assembly: stage the layer filesystem and archive it."""

import logging
import shutil
from pathlib import Path

from .archive import Archiver
from .config import BuildConfig
from .exceptions import ArchiveError, LicenseFileError
from .hive import HiveCreator, validate_hive_file

logger = logging.getLogger(__name__)


def purge_build_dir(build_dir: Path) -> None:
    """Remove all output of a previous build."""
    if build_dir.exists():
        logger.info(f"Removing previous build output in {build_dir}")
        shutil.rmtree(build_dir)


def create_hives(hive_dir: Path, hive_names: tuple[str, ...], hive_creator: HiveCreator) -> list[Path]:
    """Create one hive placeholder per name in ``hive_dir``.

    A stale file at a target path is deleted first so creation cannot fail
    on an existing file. Each hive is validated once created and the first
    failure aborts the whole run.
    """
    hive_dir.mkdir(parents=True, exist_ok=True)

    hives = []
    for name in hive_names:
        path = hive_dir / name
        if path.exists():
            logger.debug(f"Removing stale hive {path}")
            path.unlink()

        logger.info(f"Creating registry hive {name}")
        hive_creator.create(path)
        validate_hive_file(path)
        hives.append(path)

    return hives


def copy_license_files(files_dir: Path, license_files: tuple[Path, ...]) -> list[Path]:
    """Copy the license files into the root of the layer."""
    copied = []
    for source in license_files:
        if not source.is_file():
            raise LicenseFileError(f"License file not found: {source}")
        target = files_dir / source.name
        shutil.copyfile(source, target)
        copied.append(target)
    return copied


def stage_layer(config: BuildConfig, hive_creator: HiveCreator) -> Path:
    """Build the staging tree and return its top-level ``Files`` directory."""
    purge_build_dir(config.build_dir)
    config.staging_dir.mkdir(parents=True)

    create_hives(config.hive_dir, config.hive_names, hive_creator)
    copy_license_files(config.files_dir, config.license_files)

    return config.files_dir


def assemble_layer(config: BuildConfig, hive_creator: HiveCreator, archiver: Archiver) -> Path:
    """Stage the layer contents and archive them into ``layer.tar``.

    Args:
        config: Build configuration
        hive_creator: Facility that creates valid empty hive files
        archiver: Facility that writes tar archives

    Returns:
        Path to the closed ``layer.tar``

    Raises:
        HiveCreationError: If the hive facility reports a failure
        HiveValidationError: If a created hive is missing or malformed
        LicenseFileError: If a license file does not exist
        ArchiveError: If the staging tree is empty or cannot be archived
    """
    files_dir = stage_layer(config, hive_creator)

    if not files_dir.is_dir() or not any(p.is_file() for p in files_dir.rglob("*")):
        raise ArchiveError(f"Staging tree is empty: {files_dir}")

    logger.info(f"Archiving layer into {config.layer_tar}")
    archiver.archive(config.layer_tar, config.staging_dir, files_dir.name)
    return config.layer_tar

"""Image build pipeline.

Runs the four stages in order: assemble the layer, address it by content,
emit the metadata and package the image. Each stage reads back the closed
output of the previous one. Any failure propagates as an
:class:`~hostprocess_image.exceptions.ImageBuildError`; the next run purges
whatever was left behind.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from .archive import Archiver, get_archiver
from .config import BuildConfig
from .hive import HiveCreator, RegHiveCreator
from .image.metadata import (
    build_timestamp,
    write_image_config,
    write_layer_directory,
    write_manifest,
)
from .image.tags import normalize_repo_tag
from .layer import assemble_layer
from .packager import package_image, write_image_id
from .utils.digest import DigestComputer, calculate_file_digest

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Outputs of a successful build."""

    layer_hash: str
    config_hash: str
    created: str
    image_dir: Path
    image_archive: Path
    image_id_file: Path

    @property
    def image_id(self) -> str:
        return f"sha256:{self.config_hash}"


def build_image(
    config: BuildConfig,
    hive_creator: Optional[HiveCreator] = None,
    archiver: Optional[Archiver] = None,
    digest_computer: Optional[DigestComputer] = None,
    now: Optional[datetime] = None,
) -> BuildResult:
    """Build the host process base image.

    Args:
        config: Build configuration
        hive_creator: Hive facility (default: ``reg.exe`` based)
        archiver: Tar facility (default: the one named by ``config.archiver``)
        digest_computer: File digest facility (default: in-process SHA-256)
        now: Build time (default: current UTC time)

    Returns:
        BuildResult with both digests and the output paths

    Raises:
        HiveCreationError: If the hive facility reports a failure
        HiveValidationError: If a hive file is missing or malformed
        LicenseFileError: If a license file does not exist
        ArchiveError: If an archive cannot be written
        ValidationError: If a repository tag is malformed
    """
    if hive_creator is None:
        hive_creator = RegHiveCreator(key_prefix=config.key_prefix)
    if archiver is None:
        archiver = get_archiver(config.archiver)
    if digest_computer is None:
        digest_computer = calculate_file_digest

    repo_tags = [normalize_repo_tag(tag) for tag in config.repo_tags]

    layer_tar = assemble_layer(config, hive_creator, archiver)
    layer_hash = digest_computer(layer_tar)
    logger.info(f"Layer digest: sha256:{layer_hash}")

    created = build_timestamp(now)
    image_dir = config.image_dir
    image_dir.mkdir(parents=True)

    write_layer_directory(image_dir, layer_tar, layer_hash, created, config)
    config_hash = write_image_config(
        image_dir, layer_hash, created, config, digest_computer
    )
    write_manifest(image_dir, config_hash, layer_hash, repo_tags)

    package_image(image_dir, config.image_archive, archiver)
    write_image_id(config.image_id_file, config_hash)

    logger.info(f"Built image sha256:{config_hash} at {config.image_archive}")
    return BuildResult(
        layer_hash=layer_hash,
        config_hash=config_hash,
        created=created,
        image_dir=image_dir,
        image_archive=config.image_archive,
        image_id_file=config.image_id_file,
    )

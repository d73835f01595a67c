"""Metadata emission for the image directory.

Writes the per-layer ``VERSION`` and ``json`` files, the content-addressed
image config and ``manifest.json``. Digests are always computed from the
closed files on disk.
"""

import json
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from ..config import BuildConfig
from ..utils.digest import DigestComputer, calculate_file_digest, format_digest
from .models import (
    ContainerConfig,
    HistoryEntry,
    ImageConfig,
    LayerMetadata,
    ManifestEntry,
    RootFS,
)

logger = logging.getLogger(__name__)

LAYER_VERSION = "1.0"
LAYER_FILENAME = "layer.tar"
MANIFEST_FILENAME = "manifest.json"


def build_timestamp(now: Optional[datetime] = None) -> str:
    """Format a UTC timestamp in round-trip ISO-8601 form.

    Seven fractional digits and a ``Z`` suffix, e.g.
    ``2024-01-02T03:04:05.1234560Z``.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.%f") + "0Z"


def runtime_config(config: BuildConfig) -> ContainerConfig:
    """Runtime defaults inherited by containers started from the image."""
    return ContainerConfig(user=config.user, cmd=list(config.cmd))


def _write_json(path: Path, document: Any) -> None:
    with open(path, "w", encoding="utf-8", newline="\n") as f:
        json.dump(document, f, indent=4)


def layer_metadata(layer_hash: str, created: str, config: BuildConfig) -> LayerMetadata:
    return LayerMetadata(
        id=layer_hash,
        created=created,
        config=runtime_config(config),
        architecture=config.architecture,
        os=config.os_name,
    )


def image_config(layer_hash: str, created: str, config: BuildConfig) -> ImageConfig:
    return ImageConfig(
        created=created,
        config=runtime_config(config),
        rootfs=RootFS(diff_ids=[format_digest(layer_hash)]),
        history=[HistoryEntry(created=created)],
        architecture=config.architecture,
        os=config.os_name,
    )


def write_layer_directory(
    image_dir: Path, layer_tar: Path, layer_hash: str, created: str, config: BuildConfig
) -> Path:
    """Create ``<layerHash>/`` holding ``layer.tar``, ``VERSION`` and ``json``.

    Args:
        image_dir: Image directory being assembled
        layer_tar: Closed layer archive; it is moved, not copied
        layer_hash: SHA-256 of ``layer_tar``
        created: Build timestamp shared by all documents
        config: Build configuration

    Returns:
        Path to the layer directory
    """
    layer_dir = image_dir / layer_hash
    layer_dir.mkdir(parents=True)

    shutil.move(str(layer_tar), str(layer_dir / LAYER_FILENAME))
    (layer_dir / "VERSION").write_text(LAYER_VERSION, encoding="utf-8")
    _write_json(layer_dir / "json", layer_metadata(layer_hash, created, config).to_dict())

    logger.debug(f"Wrote layer directory {layer_dir}")
    return layer_dir


def write_image_config(
    image_dir: Path,
    layer_hash: str,
    created: str,
    config: BuildConfig,
    digest_computer: DigestComputer = calculate_file_digest,
) -> str:
    """Write the image config and rename it after its own digest.

    Returns:
        The config digest (lowercase hex); the file is ``<digest>.json``
    """
    staging_path = image_dir / "config.json"
    _write_json(staging_path, image_config(layer_hash, created, config).to_dict())

    config_hash = digest_computer(staging_path)
    staging_path.rename(image_dir / f"{config_hash}.json")

    logger.info(f"Image config digest: {format_digest(config_hash)}")
    return config_hash


def write_manifest(
    image_dir: Path, config_hash: str, layer_hash: str, repo_tags: Iterable[str] = ()
) -> Path:
    """Write ``manifest.json`` linking the config to its single layer."""
    entry = ManifestEntry(
        config=f"{config_hash}.json",
        layers=[f"{layer_hash}/{LAYER_FILENAME}"],
        repo_tags=list(repo_tags),
    )
    path = image_dir / MANIFEST_FILENAME
    _write_json(path, [entry.to_dict()])
    return path

"""Final image packaging."""

import logging
from pathlib import Path

from .archive import Archiver
from .exceptions import ArchiveError

logger = logging.getLogger(__name__)


def package_image(image_dir: Path, output_path: Path, archiver: Archiver) -> Path:
    """Archive the contents of ``image_dir`` into ``output_path``.

    The image directory is the archive base, so ``manifest.json``, the
    config file and the layer directory sit at the archive root.
    """
    entries = sorted(entry.name for entry in image_dir.iterdir())
    if "manifest.json" not in entries:
        raise ArchiveError(f"No manifest.json in {image_dir}")

    logger.info(f"Packaging image into {output_path}")
    archiver.archive(output_path, image_dir, *entries)
    return output_path


def write_image_id(path: Path, config_hash: str) -> Path:
    """Write the image id (the config digest) without a trailing newline."""
    path.write_text(config_hash, encoding="utf-8")
    return path

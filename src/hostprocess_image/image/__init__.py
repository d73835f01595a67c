"""Image metadata documents and archive reading."""

from .metadata import (
    build_timestamp,
    write_image_config,
    write_layer_directory,
    write_manifest,
)
from .models import ImageInfo, LayerInfo
from .reader import ImageArchiveReader, inspect_image_archive
from .tags import normalize_repo_tag, parse_repository_tag

__all__ = [
    "build_timestamp",
    "write_image_config",
    "write_layer_directory",
    "write_manifest",
    "ImageInfo",
    "LayerInfo",
    "ImageArchiveReader",
    "inspect_image_archive",
    "normalize_repo_tag",
    "parse_repository_tag",
]

"""Validation utilities for built image archives."""

import json
import tarfile
from pathlib import Path
from typing import Any

from ..exceptions import ValidationError
from .digest import calculate_stream_digest

LAYER_DIR_ENTRIES = frozenset({"VERSION", "layer.tar", "json"})


def get_tar_members(tar: tarfile.TarFile) -> set[str]:
    """Extract member names from tar file."""
    return {member.name for member in tar.getmembers()}


def get_top_level_entries(tar_members: set[str]) -> set[str]:
    """Return the distinct first path components of the tar members."""
    return {name.split("/", 1)[0] for name in tar_members}


def extract_manifest_content(tar: tarfile.TarFile) -> str | None:
    """Extract manifest.json content from tar file."""
    try:
        manifest_member = tar.extractfile("manifest.json")
        if manifest_member is None:
            return None
        return manifest_member.read().decode("utf-8")
    except (UnicodeDecodeError, KeyError):
        return None


def parse_manifest_json(manifest_content: str) -> list[dict[str, Any]] | None:
    """Parse manifest JSON content."""
    try:
        manifest_data = json.loads(manifest_content)
        if not isinstance(manifest_data, list) or len(manifest_data) == 0:
            return None
        return manifest_data
    except json.JSONDecodeError:
        return None


def validate_manifest_entry(
    manifest_entry: dict[str, Any], tar_members: set[str]
) -> bool:
    """Validate a single manifest entry."""
    if not isinstance(manifest_entry, dict):
        return False

    if not all(field in manifest_entry for field in ["Config", "Layers"]):
        return False

    if manifest_entry["Config"] not in tar_members:
        return False

    layers = manifest_entry["Layers"]
    if not isinstance(layers, list):
        return False

    return all(layer in tar_members for layer in layers)


def validate_docker_tar(tar_path: Path) -> bool:
    """Check whether a file is a loadable image archive.

    Args:
        tar_path: Image archive to check

    Returns:
        bool: True if the archive has a manifest whose config and layers
        are all present

    Raises:
        ValidationError: If the file is missing or cannot be read
    """
    if not tar_path.exists():
        raise ValidationError(f"Tar file does not exist: {tar_path}")

    try:
        if not tarfile.is_tarfile(tar_path):
            return False

        with tarfile.open(tar_path, "r") as tar:
            tar_members = get_tar_members(tar)
            if "manifest.json" not in tar_members:
                return False

            manifest_content = extract_manifest_content(tar)
            if manifest_content is None:
                return False

            manifest_data = parse_manifest_json(manifest_content)
            if manifest_data is None:
                return False

            return all(
                validate_manifest_entry(entry, tar_members) for entry in manifest_data
            )

    except (tarfile.TarError, OSError) as e:
        raise ValidationError(f"Error reading tar file: {e}") from e


def get_tar_manifest(tar_path: Path) -> list[dict[str, Any]]:
    """Return the parsed manifest.json of a valid image archive.

    Raises:
        ValidationError: If the archive is invalid or the manifest unreadable
    """
    if not validate_docker_tar(tar_path):
        raise ValidationError(f"Invalid Docker tar file: {tar_path}")

    try:
        with tarfile.open(tar_path, "r") as tar:
            manifest_content = extract_manifest_content(tar)
    except tarfile.TarError as e:
        raise ValidationError(f"Error reading manifest: {e}") from e

    manifest_data = parse_manifest_json(manifest_content or "")
    if manifest_data is None:
        raise ValidationError(f"Cannot parse manifest.json in {tar_path}")
    return manifest_data


def _member_digest(tar: tarfile.TarFile, name: str) -> str:
    member = tar.extractfile(name)
    if member is None:
        raise ValidationError(f"{name} is not a regular file")

    return calculate_stream_digest(member)


def check_archive_layout(
    manifest_data: list[dict[str, Any]], tar_members: set[str]
) -> list[str]:
    """Compare the archive tree with what the manifest references.

    The archive root must hold exactly ``manifest.json``, the config files
    and the layer directories, and every layer directory exactly
    ``VERSION``, ``layer.tar`` and ``json``.
    """
    problems = []

    layer_dirs = {
        layer.split("/", 1)[0] for entry in manifest_data for layer in entry["Layers"]
    }
    expected = {"manifest.json"} | {entry["Config"] for entry in manifest_data} | layer_dirs
    actual = get_top_level_entries(tar_members)

    for name in sorted(actual - expected):
        problems.append(f"Unexpected entry at archive root: {name}")
    for name in sorted(expected - actual):
        problems.append(f"Missing entry at archive root: {name}")

    for layer_dir in sorted(layer_dirs):
        prefix = f"{layer_dir}/"
        children = get_top_level_entries(
            {name[len(prefix):] for name in tar_members if name.startswith(prefix)}
        )
        for name in sorted(children - LAYER_DIR_ENTRIES):
            problems.append(f"Unexpected entry in layer directory: {prefix}{name}")
        for name in sorted(LAYER_DIR_ENTRIES - children):
            problems.append(f"Missing entry in layer directory: {prefix}{name}")

    return problems


def verify_image_digests(tar_path: Path) -> list[str]:
    """Check every content address referenced by an image archive.

    Verifies the archive layout (see :func:`check_archive_layout`), that the
    config file is named after its own digest, that each layer directory is
    named after its ``layer.tar`` digest and that the config's
    ``rootfs.diff_ids`` list those same digests in order.

    Returns:
        list[str]: Human readable problems; empty if the image is consistent

    Raises:
        ValidationError: If the archive cannot be read
    """
    manifest_data = get_tar_manifest(tar_path)
    problems = []

    try:
        with tarfile.open(tar_path, "r") as tar:
            problems.extend(check_archive_layout(manifest_data, get_tar_members(tar)))

            for entry in manifest_data:
                config_name = entry["Config"]
                config_hash = config_name.split("/")[-1].removesuffix(".json")
                actual = _member_digest(tar, config_name)
                if actual != config_hash:
                    problems.append(
                        f"{config_name}: content digest is {actual}"
                    )

                config_member = tar.extractfile(config_name)
                config_data = json.loads(config_member.read()) if config_member else {}
                diff_ids = config_data.get("rootfs", {}).get("diff_ids", [])

                layer_hashes = []
                for layer_path in entry["Layers"]:
                    layer_hash = layer_path.split("/")[0]
                    actual = _member_digest(tar, layer_path)
                    if actual != layer_hash:
                        problems.append(f"{layer_path}: content digest is {actual}")
                    layer_hashes.append(f"sha256:{actual}")

                if diff_ids != layer_hashes:
                    problems.append(
                        f"{config_name}: rootfs.diff_ids {diff_ids} do not match layers {layer_hashes}"
                    )

    except (tarfile.TarError, json.JSONDecodeError, KeyError) as e:
        raise ValidationError(f"Error verifying {tar_path}: {e}") from e

    return problems

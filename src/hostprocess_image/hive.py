"""Registry hive placeholder creation.

Windows rejects zero-byte hive files when a layer is unpacked, so every
placeholder must be a real, empty hive. ``reg.exe load`` creates a new hive
when the target file does not exist; unloading it again leaves the minimal
hive on disk.
"""

import ctypes
import logging
import os
import subprocess
import sys
import uuid
from pathlib import Path
from typing import Protocol

from .exceptions import HiveCreationError, HiveValidationError, PrivilegeError

logger = logging.getLogger(__name__)

# Every hive file starts with the base block signature
HIVE_SIGNATURE = b"regf"

REG_ROOT = "HKLM"


class HiveCreator(Protocol):
    """Creates a valid, empty registry hive file at a path."""

    def create(self, path: Path) -> None: ...


def is_elevated() -> bool:
    """Return True if the process runs as administrator (root off Windows)."""
    if sys.platform == "win32":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0


def ensure_elevated() -> None:
    """Raise PrivilegeError unless the process is elevated."""
    if not is_elevated():
        raise PrivilegeError(
            "Creating registry hives requires administrator privileges. "
            "Re-run the build from an elevated prompt."
        )


def validate_hive_file(path: Path) -> None:
    """Check that a hive file exists, is non-empty and has a hive header.

    Raises:
        HiveValidationError: If any of the checks fails
    """
    if not path.is_file():
        raise HiveValidationError(f"Hive file was not created: {path}")

    try:
        with open(path, "rb") as f:
            header = f.read(len(HIVE_SIGNATURE))
    except OSError as e:
        raise HiveValidationError(f"Cannot read hive file {path}: {e}") from e

    if not header:
        raise HiveValidationError(f"Hive file is empty: {path}")

    if header != HIVE_SIGNATURE:
        raise HiveValidationError(f"Hive file has an invalid header: {path}")


def make_key_name(prefix: str, hive_name: str) -> str:
    """Build a transient key name that cannot collide with an existing key."""
    return f"{prefix}_{hive_name}_{uuid.uuid4().hex[:8]}"


class RegHiveCreator:
    """Creates hives with ``reg.exe load`` / ``reg.exe unload``."""

    def __init__(self, key_prefix: str = "HPC", reg_command: str = "reg.exe") -> None:
        self.key_prefix = key_prefix
        self.reg_command = reg_command

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        cmd = [self.reg_command, *args]
        logger.debug(f"Running command: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, errors="replace")
        except OSError as e:
            raise HiveCreationError(f"Cannot run {self.reg_command}: {e}") from e

        if result.stdout:
            logger.debug(result.stdout.strip())
        if result.stderr:
            logger.debug(result.stderr.strip())
        return result

    def create(self, path: Path) -> None:
        key = f"{REG_ROOT}\\{make_key_name(self.key_prefix, path.name)}"

        result = self._run("load", key, str(path))
        if result.returncode != 0:
            raise HiveCreationError(
                f"Failed to load hive {path} under {key} "
                f"(exit code {result.returncode}): {result.stderr.strip()}"
            )

        result = self._run("unload", key)
        if result.returncode != 0:
            raise HiveCreationError(
                f"Failed to unload {key} (exit code {result.returncode}): "
                f"{result.stderr.strip()}"
            )

        logger.debug(f"Created hive {path}")

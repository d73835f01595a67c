"""Tar archivers used for the layer and for the final image."""

import logging
import os
import subprocess
import tarfile
from pathlib import Path
from typing import Optional, Protocol

from .exceptions import ArchiveError

logger = logging.getLogger(__name__)


class Archiver(Protocol):
    """Writes a tar archive of ``entries``, named relative to ``base_dir``."""

    def archive(self, output_path: Path, base_dir: Path, *entries: str) -> None: ...


class TarfileArchiver:
    """In-process archiver built on :mod:`tarfile`.

    Members are added in sorted order with owner and timestamps normalized,
    so identical trees always produce identical archives.
    """

    def __init__(self, mtime: Optional[int] = 0) -> None:
        self.mtime = mtime

    def _normalize(self, tarinfo: tarfile.TarInfo) -> tarfile.TarInfo:
        if self.mtime is not None:
            tarinfo.mtime = self.mtime
        tarinfo.uid = 0
        tarinfo.gid = 0
        tarinfo.uname = ""
        tarinfo.gname = ""
        return tarinfo

    def _add(self, tar: tarfile.TarFile, source: Path, arcname: str) -> None:
        tarinfo = self._normalize(tar.gettarinfo(str(source), arcname))

        if tarinfo.isreg():
            with open(source, "rb") as f:
                tar.addfile(tarinfo, f)
        elif tarinfo.isdir():
            tar.addfile(tarinfo)
            for name in sorted(os.listdir(source)):
                self._add(tar, source / name, f"{arcname}/{name}")
        else:
            tar.addfile(tarinfo)

    def archive(self, output_path: Path, base_dir: Path, *entries: str) -> None:
        if not entries:
            raise ArchiveError(f"Nothing to archive into {output_path}")

        logger.debug(f"Archiving {', '.join(entries)} from {base_dir} into {output_path}")
        try:
            with tarfile.open(output_path, "w", format=tarfile.PAX_FORMAT) as tar:
                for entry in entries:
                    self._add(tar, base_dir / entry, entry)
        except (tarfile.TarError, OSError) as e:
            raise ArchiveError(f"Failed to write {output_path}: {e}") from e


class CommandArchiver:
    """Archiver that shells out to the host ``tar`` command."""

    def __init__(self, tar_command: str = "tar") -> None:
        self.tar_command = tar_command

    def archive(self, output_path: Path, base_dir: Path, *entries: str) -> None:
        if not entries:
            raise ArchiveError(f"Nothing to archive into {output_path}")

        cmd = [self.tar_command, "-cf", str(output_path), "-C", str(base_dir), *entries]
        logger.debug(f"Running command: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, errors="replace")
        except OSError as e:
            raise ArchiveError(f"Cannot run {self.tar_command}: {e}") from e

        if result.returncode != 0:
            raise ArchiveError(
                f"{self.tar_command} failed with exit code {result.returncode}: "
                f"{result.stderr.strip()}"
            )


def get_archiver(name: str) -> Archiver:
    """Return the archiver registered under ``name`` ("tarfile" or "tar")."""
    if name == "tarfile":
        return TarfileArchiver()
    if name == "tar":
        return CommandArchiver()
    raise ValueError(f"Unknown archiver: {name}")

"""Test doubles for the external build facilities."""

import json
import tarfile
from pathlib import Path

from hostprocess_image.exceptions import HiveCreationError
from hostprocess_image.hive import HIVE_SIGNATURE
from hostprocess_image.utils.digest import calculate_file_digest

HIVE_SIZE = 8192


class FakeHiveCreator:
    """Writes a fixed hive-like file: the ``regf`` signature plus padding."""

    def __init__(self) -> None:
        self.created: list[Path] = []

    def create(self, path: Path) -> None:
        if path.exists():
            raise HiveCreationError(f"Hive already exists: {path}")
        path.write_bytes(HIVE_SIGNATURE + bytes(HIVE_SIZE - len(HIVE_SIGNATURE)))
        self.created.append(path)


class FailingHiveCreator(FakeHiveCreator):
    """Reports a failure, as a non-zero ``reg load``, for one hive name."""

    def __init__(self, fail_on: str) -> None:
        super().__init__()
        self.fail_on = fail_on

    def create(self, path: Path) -> None:
        if path.name == self.fail_on:
            raise HiveCreationError(f"Failed to load hive {path} (exit code 1)")
        super().create(path)


class ZeroByteHiveCreator(FakeHiveCreator):
    """Reports success but leaves a zero-byte file behind."""

    def create(self, path: Path) -> None:
        path.touch()
        self.created.append(path)


class SilentHiveCreator(FakeHiveCreator):
    """Reports success without creating anything."""

    def create(self, path: Path) -> None:
        pass


class RecordingArchiver:
    """Archiver that records its calls instead of writing archives."""

    def __init__(self) -> None:
        self.calls: list[tuple[Path, Path, tuple[str, ...]]] = []

    def archive(self, output_path: Path, base_dir: Path, *entries: str) -> None:
        self.calls.append((output_path, base_dir, entries))
        output_path.write_bytes(b"")


class RecordingDigestComputer:
    """SHA-256 facility that records the names of the files it hashed."""

    def __init__(self) -> None:
        self.hashed: list[tuple[str, str]] = []

    def __call__(self, path: Path) -> str:
        digest = calculate_file_digest(path)
        self.hashed.append((path.name, digest))
        return digest


def read_member(tar_path: Path, name: str) -> bytes:
    """Return the content of one member of a tar file."""
    with tarfile.open(tar_path, "r") as tar:
        member = tar.extractfile(name)
        assert member is not None
        return member.read()


def read_json_member(tar_path: Path, name: str):
    return json.loads(read_member(tar_path, name))


def write_tar(tar_path: Path, members: dict[str, bytes]) -> Path:
    """Create a tar file from a name -> content mapping."""
    with tarfile.open(tar_path, "w") as tar:
        for name, content in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            tar.addfile(info, fileobj=tarfile.io.BytesIO(content))
    return tar_path


def write_failing_command(path: Path, exit_code: int = 3) -> Path:
    """Write a shell script that prints a non-UTF-8 byte to stderr and fails."""
    path.write_text(f"#!/bin/sh\nprintf '\\201 failed' >&2\nexit {exit_code}\n")
    path.chmod(0o755)
    return path

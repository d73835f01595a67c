"""Digest calculation utilities."""

import hashlib
from pathlib import Path
from typing import BinaryIO, Protocol, Union

import aiofiles

CHUNK_SIZE = 65536


class DigestComputer(Protocol):
    """Computes the lowercase hex SHA-256 of a closed file."""

    def __call__(self, path: Path) -> str: ...


def calculate_digest(data: Union[bytes, bytearray], algorithm: str = "sha256") -> str:
    """Calculate digest of data.

    Args:
        data: Data to hash
        algorithm: Hash algorithm (default: sha256)

    Returns:
        Digest string in format "algorithm:hex"

    Raises:
        ValueError: If algorithm is not supported
        ValueError: If data is not bytes-like
    """
    if not isinstance(data, (bytes, bytearray)):
        raise ValueError("Data must be bytes or bytearray")

    if algorithm not in hashlib.algorithms_available:
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    hasher = hashlib.new(algorithm)
    hasher.update(data)
    return f"{algorithm}:{hasher.hexdigest()}"


def calculate_stream_digest(stream: BinaryIO) -> str:
    """SHA-256 of everything left in a binary stream, as lowercase hex."""
    hasher = hashlib.sha256()
    for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
        hasher.update(chunk)
    return hasher.hexdigest()


def calculate_file_digest(path: Union[str, Path]) -> str:
    """Calculate the SHA-256 of a file's full contents.

    The file is read back from disk, so callers must close any writer first.

    Args:
        path: File to hash

    Returns:
        Lowercase hex digest without algorithm prefix
    """
    with open(path, "rb") as f:
        return calculate_stream_digest(f)


async def calculate_file_digest_async(path: Union[str, Path]) -> str:
    """Async variant of :func:`calculate_file_digest`."""
    hasher = hashlib.sha256()
    async with aiofiles.open(path, "rb") as f:
        while True:
            chunk = await f.read(CHUNK_SIZE)
            if not chunk:
                break
            hasher.update(chunk)
    return hasher.hexdigest()


def format_digest(hex_digest: str, algorithm: str = "sha256") -> str:
    """Prefix a bare hex digest with its algorithm ("sha256:<hex>")."""
    return f"{algorithm}:{hex_digest}"


def strip_digest(digest: str) -> str:
    """Remove the algorithm prefix from a digest, if present."""
    return digest.split(":", 1)[-1]

"""Async reader for built image archives."""

import asyncio
import json
import tarfile
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional

from ..exceptions import TarReadError
from ..utils.digest import calculate_digest, calculate_file_digest_async, strip_digest
from .models import ImageInfo, LayerInfo


class ImageArchiveReader:
    """Async reader for ``manifest.json`` style image archives."""

    def __init__(self, tar_path: str | Path) -> None:
        """Initialize the reader.

        Args:
            tar_path: Path to the image archive
        """
        self.tar_path = Path(tar_path)
        if not self.tar_path.exists():
            raise TarReadError(f"Tar file not found: {tar_path}")
        self._tar_file: Optional[tarfile.TarFile] = None

    async def __aenter__(self) -> "ImageArchiveReader":
        """Enter async context manager."""
        loop = asyncio.get_running_loop()
        try:
            self._tar_file = await loop.run_in_executor(
                None, tarfile.open, str(self.tar_path), "r"
            )
        except (tarfile.TarError, OSError) as e:
            raise TarReadError(f"Cannot open {self.tar_path}: {e}") from e
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        await self.close()

    async def close(self) -> None:
        """Close the tar file."""
        if self._tar_file:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._tar_file.close)
            self._tar_file = None

    async def get_manifest(self) -> List[Dict]:
        """Get the manifest.json from the archive.

        Raises:
            TarReadError: If manifest cannot be read
        """
        loop = asyncio.get_running_loop()
        manifest_data = await loop.run_in_executor(
            None, self._extract_file_content, "manifest.json"
        )
        try:
            return json.loads(manifest_data)
        except json.JSONDecodeError as e:
            raise TarReadError(f"Failed to parse manifest.json: {e}") from e

    async def get_config(self, config_digest: str) -> bytes:
        """Get image configuration JSON.

        Args:
            config_digest: Config digest, with or without sha256: prefix

        Returns:
            Config JSON bytes
        """
        config_filename = f"{strip_digest(config_digest)}.json"
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, self._extract_file_content, config_filename
        )

    async def get_layer_stream(
        self, layer_path: str, chunk_size: int = 8192
    ) -> AsyncIterator[bytes]:
        """Get layer data as an async stream.

        Args:
            layer_path: Path to layer file in the archive
            chunk_size: Size of chunks to yield

        Raises:
            TarReadError: If layer cannot be read
        """
        if not self._tar_file:
            raise TarReadError("Tar file not opened")

        loop = asyncio.get_running_loop()
        try:
            layer_file = await loop.run_in_executor(
                None, self._tar_file.extractfile, layer_path
            )
        except KeyError as e:
            raise TarReadError(f"Layer {layer_path} not found in tar") from e

        if layer_file is None:
            raise TarReadError(f"Could not extract layer {layer_path}")

        try:
            while True:
                chunk = await loop.run_in_executor(None, layer_file.read, chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            layer_file.close()

    async def extract_image_info(self) -> ImageInfo:
        """Extract image information from the archive.

        Layer digests are recomputed from the layer contents rather than
        taken from their directory names.

        Raises:
            TarReadError: If image info cannot be extracted
        """
        manifest_list = await self.get_manifest()
        if not manifest_list:
            raise TarReadError("Empty manifest")

        manifest = manifest_list[0]
        try:
            config_filename = manifest["Config"]
            layer_paths = manifest["Layers"]
        except (KeyError, TypeError) as e:
            raise TarReadError(f"Invalid manifest entry: {e}") from e

        config_digest = f"sha256:{config_filename.removesuffix('.json')}"
        config_data = await self.get_config(config_digest)
        try:
            config = json.loads(config_data)
        except json.JSONDecodeError as e:
            raise TarReadError(f"Failed to parse {config_filename}: {e}") from e

        loop = asyncio.get_running_loop()
        layers = []
        for layer_path in layer_paths:
            chunks = []
            async for chunk in self.get_layer_stream(layer_path):
                chunks.append(chunk)
            layer_data = b"".join(chunks)

            member = await loop.run_in_executor(
                None, self._tar_file.getmember, layer_path
            )
            layers.append(
                LayerInfo(
                    digest=calculate_digest(layer_data),
                    size=member.size,
                    tar_path=layer_path,
                )
            )

        total_size = len(config_data) + sum(layer.size for layer in layers)

        return ImageInfo(
            config_digest=config_digest,
            layers=layers,
            diff_ids=config.get("rootfs", {}).get("diff_ids", []),
            architecture=config.get("architecture", ""),
            os=config.get("os", ""),
            created=config.get("created", ""),
            repo_tags=manifest.get("RepoTags", []),
            size=total_size,
            archive_digest=await calculate_file_digest_async(self.tar_path),
        )

    def _extract_file_content(self, filename: str) -> bytes:
        """Extract file content from the archive (sync helper).

        Raises:
            TarReadError: If file cannot be extracted
        """
        if not self._tar_file:
            raise TarReadError("Tar file not opened")

        try:
            file_obj = self._tar_file.extractfile(filename)
        except KeyError as e:
            raise TarReadError(f"File {filename} not found in tar") from e
        except tarfile.TarError as e:
            raise TarReadError(f"Failed to extract {filename}: {e}") from e

        if file_obj is None:
            raise TarReadError(f"Could not extract {filename}")

        with file_obj:
            return file_obj.read()


async def inspect_image_archive(tar_path: str | Path) -> ImageInfo:
    """Read image information from an archive in one call."""
    async with ImageArchiveReader(tar_path) as reader:
        return await reader.extract_image_info()

"""Example: verify and inspect a built base image archive."""

import asyncio
import logging
import sys
from pathlib import Path

from hostprocess_image import (
    ImageArchiveReader,
    ImageBuildError,
    validate_docker_tar,
    verify_image_digests,
)

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ARCHIVE = "build/windows-host-process-containers-base-image.tar"


async def main(archive: str) -> int:
    try:
        archive_path = Path(archive)
        if not validate_docker_tar(archive_path):
            logger.error(f"{archive} is not an image archive")
            return 1

        for problem in verify_image_digests(archive_path):
            logger.error(problem)

        async with ImageArchiveReader(archive_path) as reader:
            info = await reader.extract_image_info()
            logger.info(f"Image {info.config_digest} ({info.os}/{info.architecture})")
            for layer in info.layers:
                logger.info(f"  {layer.digest} {layer.size} bytes")

            # Stream the layer without loading it into memory
            total = 0
            async for chunk in reader.get_layer_stream(info.layers[0].tar_path):
                total += len(chunk)
            logger.info(f"Streamed {total} bytes of {info.layers[0].tar_path}")

    except ImageBuildError as e:
        logger.error(f"Cannot read {archive}: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else ARCHIVE)))

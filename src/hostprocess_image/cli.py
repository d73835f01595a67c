"""Command line interface."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .build import build_image
from .config import ARCHIVERS, BuildConfig
from .exceptions import ImageBuildError
from .hive import RegHiveCreator, ensure_elevated
from .image.reader import inspect_image_archive
from .utils.validator import validate_docker_tar, verify_image_digests

logger = logging.getLogger(__name__)


def _build(opts: argparse.Namespace) -> int:
    config = BuildConfig.from_env(
        build_dir=opts.build_dir,
        license_files=opts.license,
        repo_tags=opts.tag,
        archiver=opts.archiver,
    )
    logger.debug(f"Using {config}")

    if not opts.skip_privilege_check:
        ensure_elevated()

    result = build_image(config, hive_creator=RegHiveCreator(key_prefix=config.key_prefix))
    print(result.config_hash)
    return 0


def _inspect(opts: argparse.Namespace) -> int:
    info = asyncio.run(inspect_image_archive(opts.archive))
    print(f"Image:        {info.config_digest}")
    print(f"Platform:     {info.os}/{info.architecture}")
    print(f"Created:      {info.created}")
    print(f"Tags:         {', '.join(info.repo_tags) or '<none>'}")
    print(f"Size:         {info.size}")
    print(f"Archive:      sha256:{info.archive_digest}")
    for layer in info.layers:
        print(f"Layer:        {layer.digest} ({layer.size} bytes) {layer.tar_path}")
    return 0


def _verify(opts: argparse.Namespace) -> int:
    archive = Path(opts.archive)
    if not validate_docker_tar(archive):
        logger.error(f"{archive} is not a valid image archive")
        return 1

    problems = verify_image_digests(archive)
    for problem in problems:
        logger.error(problem)
    if problems:
        return 1

    logger.info(f"{archive} is consistent")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hostprocess-image",
        description="Build the Windows host process containers base image",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Build the image archive")
    build.add_argument("--build-dir", type=Path, help="Output directory (default: ./build)")
    build.add_argument(
        "--license",
        action="append",
        type=Path,
        help="License file to include in the layer (repeatable)",
    )
    build.add_argument(
        "--tag", action="append", help="Repository tag for manifest.json (repeatable)"
    )
    build.add_argument("--archiver", choices=ARCHIVERS, help="Tar implementation to use")
    build.add_argument(
        "--skip-privilege-check",
        action="store_true",
        help="Do not require administrator privileges before building",
    )
    build.set_defaults(func=_build)

    inspect = subparsers.add_parser("inspect", help="Show the contents of an image archive")
    inspect.add_argument("archive", type=Path)
    inspect.set_defaults(func=_inspect)

    verify = subparsers.add_parser("verify", help="Check the digests of an image archive")
    verify.add_argument("archive", type=Path)
    verify.set_defaults(func=_verify)

    return parser


def resolve_log_level(cli_level: Optional[str] = None) -> str:
    """Return the logging level from ``--log-level``, else ``LOG_LEVEL``, else INFO."""
    return (cli_level or os.getenv("LOG_LEVEL", "INFO")).upper()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    opts = parser.parse_args(argv)

    logging.basicConfig(
        level=resolve_log_level(opts.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return opts.func(opts)
    except (ImageBuildError, ValueError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())

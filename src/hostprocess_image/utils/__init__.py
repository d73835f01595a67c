"""Utility functions for the host process base image builder."""

from .digest import (
    DigestComputer,
    calculate_digest,
    calculate_file_digest,
    calculate_stream_digest,
    format_digest,
)

__all__ = [
    "DigestComputer",
    "calculate_digest",
    "calculate_file_digest",
    "calculate_stream_digest",
    "format_digest",
]

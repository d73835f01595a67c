"""Repository tag handling for ``manifest.json``."""

import re

from ..exceptions import ValidationError

# Tag component of a reference, as accepted by docker load
TAG_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")


def parse_repository_tag(repo_tag: str) -> tuple[str, str]:
    """Split a ``repository:tag`` string into its components.

    Args:
        repo_tag: Repository tag string
            - e.g. "hostprocess:latest", "localhost:5000/hpc/base:1.0"

    Returns:
        tuple[str, str]: (repository, tag); tag defaults to "latest"

    Examples:
        parse_repository_tag("hpc:1.0")
        # ("hpc", "1.0")

        parse_repository_tag("localhost:5000/hpc")
        # ("localhost:5000/hpc", "latest")
    """
    repository, sep, tag = repo_tag.rpartition(":")
    # A colon inside the last path segment separates the tag; one before a
    # slash belongs to a registry host:port
    if sep and "/" not in tag:
        return repository, tag or "latest"
    return repo_tag, "latest"


def normalize_repo_tag(repo_tag: str) -> str:
    """Return ``repository:tag`` with an explicit tag.

    Raises:
        ValidationError: If the repository is empty or the tag is malformed
    """
    repository, tag = parse_repository_tag(repo_tag.strip())
    if not repository:
        raise ValidationError(f"Missing repository name: {repo_tag!r}")
    if repository != repository.lower():
        raise ValidationError(f"Repository name must be lowercase: {repo_tag!r}")
    if not TAG_PATTERN.match(tag):
        raise ValidationError(f"Invalid tag: {repo_tag!r}")
    return f"{repository}:{tag}"

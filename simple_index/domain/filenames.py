from __future__ import annotations

from typing import NamedTuple

from simple_index.domain.errors import InvalidFormat

DEFAULT_ARTIFACT_EXTENSION = ".whl"
FILENAME_DELIMITER = "-"


class ArtifactName(NamedTuple):
    name: str
    version: str


def is_accepted_artifact(filename: str | None, extension: str = DEFAULT_ARTIFACT_EXTENSION) -> bool:
    """
    Return True when an uploaded part should be processed as an artifact.
    """
    return bool(filename) and filename.endswith(extension)


def parse_artifact_filename(filename: str, extension: str = DEFAULT_ARTIFACT_EXTENSION) -> ArtifactName:
    """
    Extract ``(name, version)`` from an artifact filename.

    The convention is ``<name>-<version>[-<anything>]<extension>``, e.g.
    ``requests-2.31.0-py3-none-any.whl`` -> ``("requests", "2.31.0")``.
    Matching is case-sensitive and nothing is normalized.

    Raises:
        InvalidFormat: fewer than two segments, an empty segment, or a name
            that could escape the package's blob directory.
    """
    if not filename or "/" in filename or "\\" in filename or filename.startswith("."):
        raise InvalidFormat(f"Invalid package filename: {filename!r}")

    stem = filename[: -len(extension)] if extension and filename.endswith(extension) else filename
    parts = stem.split(FILENAME_DELIMITER)
    if len(parts) < 2:
        raise InvalidFormat(f"Invalid package filename format: {filename!r}")

    name, version = parts[0], parts[1]
    if not name or not version:
        raise InvalidFormat(f"Invalid package filename format: {filename!r}")

    return ArtifactName(name=name, version=version)

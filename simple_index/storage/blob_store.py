from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path
from typing import Iterator, NamedTuple

import aiofiles

from simple_index.domain.errors import IOFailure

logger = logging.getLogger(__name__)

STAGING_PREFIX = "."
STAGING_SUFFIX = ".upload"
_STAGING_NAME = re.compile(r"^\.(?P<filename>.+)\.(?P<token>[0-9a-f]{32})\.upload$")


class StagedBlob(NamedTuple):
    name: str
    filename: str
    path: Path


class BlobStore:
    """
    Raw artifact bytes under ``<packages_dir>/<name>/<filename>``.

    Uploads are written in two steps: ``stage`` writes the bytes to a hidden
    ``.<filename>.<token>.upload`` file next to the final location, and
    ``promote`` renames it into place once the release is registered. The
    token is unique per upload, so concurrent uploads of one filename never
    share a staged file. Only promoted blobs are served.
    """

    def __init__(self, packages_dir: Path):
        self._packages_dir = packages_dir

    @property
    def packages_dir(self) -> Path:
        return self._packages_dir

    def path_for(self, name: str, filename: str) -> Path:
        return self._packages_dir / name / filename

    def staging_path_for(self, name: str, filename: str, token: str | None = None) -> Path:
        token = token or uuid.uuid4().hex
        return self._packages_dir / name / f"{STAGING_PREFIX}{filename}.{token}{STAGING_SUFFIX}"

    def exists(self, name: str, filename: str) -> bool:
        return self.path_for(name, filename).is_file()

    async def stage(self, name: str, filename: str, content: bytes) -> StagedBlob:
        path = self.staging_path_for(name, filename)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            if path.is_file():
                path.unlink()
            raise IOFailure(f"Failed to stage blob {name}/{filename}: {e}") from e
        logger.debug(f"Staged {len(content)} bytes for {name}/{filename} at {path.name}")
        return StagedBlob(name=name, filename=filename, path=path)

    def promote(self, staged: StagedBlob) -> Path:
        target = self.path_for(staged.name, staged.filename)
        try:
            staged.path.replace(target)
        except OSError as e:
            raise IOFailure(f"Failed to store blob {staged.name}/{staged.filename}: {e}") from e
        return target

    def discard(self, staged: StagedBlob) -> None:
        try:
            staged.path.unlink(missing_ok=True)
        except OSError as e:
            # leaves a staged file for the next startup recovery pass
            logger.warning(f"Failed to discard staged blob {staged.path}: {e}")

    def iter_staged(self) -> Iterator[StagedBlob]:
        """Yield staged blobs left behind by interrupted uploads."""
        if not self._packages_dir.exists():
            return
        for pkg_dir in sorted(self._packages_dir.iterdir()):
            if not pkg_dir.is_dir():
                continue
            for path in sorted(pkg_dir.iterdir()):
                match = _STAGING_NAME.match(path.name)
                if match and path.is_file():
                    yield StagedBlob(name=pkg_dir.name, filename=match.group("filename"), path=path)

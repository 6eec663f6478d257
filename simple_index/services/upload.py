"""
Upload pipeline: turns a stream of multipart parts into registered releases.

For every accepted part the pipeline:
- parses ``<name>-<version>-...`` out of the filename,
- stages the bytes next to their final blob location,
- registers the release (which persists the snapshot),
- promotes the staged bytes to the served location.

A failure at any step undoes the earlier steps for that part, so a blob is
only visible when its release is in the index and vice versa. Staged files
left behind by a crash are resolved by ``recover()`` at startup.
"""
from __future__ import annotations

import logging
from typing import AsyncIterable, List

from simple_index.domain.filenames import (
    DEFAULT_ARTIFACT_EXTENSION,
    is_accepted_artifact,
    parse_artifact_filename,
)
from simple_index.domain.models import UploadPart, UploadResult
from simple_index.domain.registry import ReleaseRegistry
from simple_index.storage.blob_store import BlobStore

logger = logging.getLogger(__name__)


class UploadPipeline:
    """
    Stores accepted artifacts as blobs and registers them in the registry.
    """

    def __init__(
        self,
        registry: ReleaseRegistry,
        blobs: BlobStore,
        extension: str = DEFAULT_ARTIFACT_EXTENSION,
    ):
        self.registry = registry
        self.blobs = blobs
        self.extension = extension

    async def process(self, parts: AsyncIterable[UploadPart]) -> List[UploadResult]:
        """
        Consume ``parts`` and register every accepted artifact.

        Parts without a filename or with another extension are skipped. The
        first failing part aborts the request; parts already registered stay
        registered.
        """
        results: List[UploadResult] = []
        async for part in parts:
            if not is_accepted_artifact(part.filename, self.extension):
                logger.debug(f"Skipping part {part.field_name!r} (filename={part.filename!r})")
                continue
            results.append(await self.accept(part.filename, part.content))
        return results

    async def accept(self, filename: str, content: bytes) -> UploadResult:
        artifact = parse_artifact_filename(filename, self.extension)
        staged = await self.blobs.stage(artifact.name, filename, content)

        try:
            release = await self.registry.add_release(artifact.name, artifact.version, filename)
        except Exception:
            self.blobs.discard(staged)
            raise

        try:
            self.blobs.promote(staged)
        except Exception:
            logger.error(f"Rolling back {artifact.name} {artifact.version}: blob could not be stored")
            try:
                await self.registry.remove_release(artifact.name, filename, release.upload_time)
            except Exception as rollback_error:
                # release stays registered; the staged blob is left for recover()
                logger.error(
                    f"Rollback of {artifact.name}/{filename} failed, keeping {staged.path.name}: {rollback_error}"
                )
            else:
                self.blobs.discard(staged)
            raise

        logger.info(f"Successfully uploaded package: {artifact.name} ({filename})")
        return UploadResult(name=artifact.name, version=artifact.version, filename=filename)

    async def recover(self) -> int:
        """
        Resolve staged blobs left by interrupted uploads.

        A staged blob whose release made it into the index is promoted; any
        other staged blob is deleted. Returns the number of staged blobs seen.
        """
        count = 0
        for staged in list(self.blobs.iter_staged()):
            count += 1
            if await self.registry.has_release(staged.name, staged.filename):
                self.blobs.promote(staged)
                logger.info(f"Recovered interrupted upload {staged.name}/{staged.filename}")
            else:
                self.blobs.discard(staged)
                logger.warning(f"Discarded unregistered upload {staged.name}/{staged.filename}")
        return count

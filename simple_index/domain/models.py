"""
Pydantic models for the package registry.

This module defines the data models shared by the registry, the snapshot store
and the HTTP layer:
- Releases and packages (the catalog itself)
- Upload parts and upload results (the upload pipeline's input/output)

All models use Pydantic for validation, serialization, and type safety.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware current time, used as the default release clock."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Catalog Models
# ---------------------------------------------------------------------------


class Release(BaseModel):
    """
    One uploaded version of a package.

    Releases are immutable once created; the registry replaces whole
    ``Package`` objects instead of editing releases in place.
    """

    model_config = ConfigDict(frozen=True)

    version: str = Field(description="Version string taken from the artifact filename.")
    filename: str = Field(description="Artifact filename as uploaded (e.g. 'pkg-1.0-py3-none-any.whl').")
    upload_time: datetime = Field(
        default_factory=utcnow,
        description="When the release was registered (UTC).",
    )


class Package(BaseModel):
    """
    A package name plus its releases, newest first.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    releases: List[Release] = Field(default_factory=list)

    @property
    def latest(self) -> Release | None:
        return self.releases[0] if self.releases else None

    def with_release(self, release: Release) -> "Package":
        """
        Return a copy with ``release`` appended and releases re-sorted by
        upload time, newest first. Equal timestamps keep insertion order.
        """
        releases = sorted(
            [*self.releases, release],
            key=lambda r: r.upload_time,
            reverse=True,
        )
        return Package(name=self.name, releases=releases)

    def without_release(
        self, filename: str, upload_time: datetime | None = None
    ) -> tuple["Package", Release | None]:
        """
        Return a copy without the newest release carrying ``filename`` together
        with the removed release (``None`` when nothing matched).

        With ``upload_time`` only the release registered at that instant
        matches, so re-uploads of the same filename are left alone.
        """
        for idx, release in enumerate(self.releases):
            if release.filename != filename:
                continue
            if upload_time is None or release.upload_time == upload_time:
                remaining = self.releases[:idx] + self.releases[idx + 1:]
                return Package(name=self.name, releases=remaining), release
        return self, None


# ---------------------------------------------------------------------------
# Upload Models
# ---------------------------------------------------------------------------


class UploadPart(BaseModel):
    """
    A single named part of an incoming multipart upload.

    ``filename`` is ``None`` for plain form fields, which the upload pipeline
    ignores.
    """

    field_name: str = ""
    filename: str | None = None
    content: bytes = b""


class UploadResult(BaseModel):
    """A release registered by the upload pipeline."""

    name: str
    version: str
    filename: str

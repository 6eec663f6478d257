"""
Shared test fixtures for the package registry.

Fixtures are organized by layer:

    1. Clock and configuration
    2. Storage (snapshot store, blob store)
    3. Registry and upload pipeline
    4. HTTP application
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Mapping

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from simple_index.core import dependencies
from simple_index.core.config import Settings
from simple_index.domain.errors import IOFailure
from simple_index.domain.models import Package
from simple_index.domain.registry import ReleaseRegistry
from simple_index.services.upload import UploadPipeline
from simple_index.storage.blob_store import BlobStore
from simple_index.storage.snapshot_store import JsonSnapshotStore


# =============================================================================
# Helpers
# =============================================================================
class TickingClock:
    """Deterministic clock: every call is one second after the previous."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


class FrozenClock:
    """Clock that always returns the same instant."""

    def __init__(self, instant: datetime | None = None):
        self.instant = instant or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.instant


class FlakySnapshotStore(JsonSnapshotStore):
    """JSON store whose saves can be switched to fail."""

    def __init__(self, base_path: Path):
        super().__init__(base_path)
        self.fail_saves = False
        self.saves = 0

    async def save(self, state: Mapping[str, Package]) -> None:
        if self.fail_saves:
            raise IOFailure("disk full")
        self.saves += 1
        await super().save(state)


def wheel(name: str, version: str) -> str:
    return f"{name}-{version}-py3-none-any.whl"


# =============================================================================
# Clock and configuration
# =============================================================================
@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    d = tmp_path / "data"
    d.mkdir()
    return d


@pytest.fixture
def settings(data_dir: Path) -> Settings:
    return Settings(data_dir=data_dir)


# =============================================================================
# Storage
# =============================================================================
@pytest.fixture
def snapshot_store(data_dir: Path) -> FlakySnapshotStore:
    return FlakySnapshotStore(data_dir)


@pytest.fixture
def blob_store(settings: Settings) -> BlobStore:
    return BlobStore(settings.packages_dir)


# =============================================================================
# Registry and upload pipeline
# =============================================================================
@pytest_asyncio.fixture
async def registry(snapshot_store: FlakySnapshotStore, clock: TickingClock) -> ReleaseRegistry:
    return await ReleaseRegistry.open(snapshot_store, clock=clock)


@pytest.fixture
def pipeline(registry: ReleaseRegistry, blob_store: BlobStore) -> UploadPipeline:
    return UploadPipeline(registry, blob_store)


# =============================================================================
# HTTP application
# =============================================================================
@pytest.fixture
def app_env(data_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Dict[str, str]:
    """Point the application singletons at a fresh data directory."""
    monkeypatch.setenv("SIMPLE_INDEX_DATA_DIR", str(data_dir))
    dependencies.reset_dependencies()
    yield {"SIMPLE_INDEX_DATA_DIR": str(data_dir)}
    dependencies.reset_dependencies()


@pytest.fixture
def client(app_env: Dict[str, str]) -> TestClient:
    from simple_index.main import app

    with TestClient(app) as test_client:
        yield test_client

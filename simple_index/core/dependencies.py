from __future__ import annotations

import asyncio
from typing import Optional

from simple_index.core.config import Settings
from simple_index.domain.registry import ReleaseRegistry
from simple_index.services.upload import UploadPipeline
from simple_index.storage.blob_store import BlobStore
from simple_index.storage.snapshot_store import JsonSnapshotStore, SnapshotStore

_settings: Optional[Settings] = None
_snapshot_store: Optional[SnapshotStore] = None
_blob_store: Optional[BlobStore] = None
_registry: Optional[ReleaseRegistry] = None
_upload_pipeline: Optional[UploadPipeline] = None
_registry_lock: Optional[asyncio.Lock] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def get_snapshot_store() -> SnapshotStore:
    global _snapshot_store
    if _snapshot_store is None:
        _snapshot_store = JsonSnapshotStore(get_settings().data_dir)
    return _snapshot_store


def get_blob_store() -> BlobStore:
    global _blob_store
    if _blob_store is None:
        packages_dir = get_settings().packages_dir
        packages_dir.mkdir(parents=True, exist_ok=True)
        _blob_store = BlobStore(packages_dir)
    return _blob_store


async def get_registry() -> ReleaseRegistry:
    """
    Return the process-wide registry, loading the snapshot on first use.

    A corrupted snapshot raises here and is fatal at startup.
    """
    global _registry, _registry_lock
    if _registry is not None:
        return _registry
    if _registry_lock is None:
        _registry_lock = asyncio.Lock()
    async with _registry_lock:
        if _registry is None:
            _registry = await ReleaseRegistry.open(get_snapshot_store())
    return _registry


async def get_upload_pipeline() -> UploadPipeline:
    global _upload_pipeline
    if _upload_pipeline is None:
        _upload_pipeline = UploadPipeline(
            await get_registry(),
            get_blob_store(),
            extension=get_settings().artifact_extension,
        )
    return _upload_pipeline


def reset_dependencies() -> None:
    """Forget every singleton so the next call re-reads the environment."""
    global _settings, _snapshot_store, _blob_store, _registry, _upload_pipeline, _registry_lock
    _settings = None
    _snapshot_store = None
    _blob_store = None
    _registry = None
    _upload_pipeline = None
    _registry_lock = None

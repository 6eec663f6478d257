from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, List

from simple_index.core.locks import ReadWriteLock
from simple_index.domain.errors import NotFound
from simple_index.domain.models import Package, Release, utcnow
from simple_index.storage.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


class ReleaseRegistry:
    """
    Concurrency-safe in-memory catalog of packages and their releases.

    The registry owns its snapshot store and a single read/write lock. Reads
    take the shared lock; mutations hold the exclusive lock across
    mutate-then-persist, and a mutation only becomes visible in memory after
    the snapshot carrying it has been written. A failed save therefore
    leaves both memory and disk at the previous state.
    """

    def __init__(
        self,
        store: SnapshotStore,
        packages: Dict[str, Package] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._packages: Dict[str, Package] = dict(packages or {})
        self._clock = clock
        self._lock = ReadWriteLock()

    @classmethod
    async def open(cls, store: SnapshotStore, clock: Callable[[], datetime] = utcnow) -> "ReleaseRegistry":
        """Build a registry from the store's persisted snapshot (empty if absent)."""
        return cls(store, await store.load(), clock=clock)

    async def list_packages(self) -> List[str]:
        async with self._lock.read():
            return sorted(self._packages)

    async def get_package(self, name: str) -> Package:
        async with self._lock.read():
            package = self._packages.get(name)
        if package is None:
            raise NotFound(name)
        return package

    async def has_release(self, name: str, filename: str) -> bool:
        async with self._lock.read():
            package = self._packages.get(name)
            return package is not None and any(r.filename == filename for r in package.releases)

    async def add_release(self, name: str, version: str, filename: str) -> Release:
        async with self._lock.write():
            release = Release(version=version, filename=filename, upload_time=self._clock())
            current = self._packages.get(name) or Package(name=name)
            await self._commit(name, current.with_release(release))

        logger.info(f"Registered {name} {version} ({filename})")
        return release

    async def remove_release(
        self, name: str, filename: str, upload_time: datetime | None = None
    ) -> Release:
        """
        Undo the newest release of ``name`` carrying ``filename``, or exactly
        the one registered at ``upload_time`` when given.

        Used to roll back an upload whose blob could not be stored. A package
        left without releases is dropped.
        """
        async with self._lock.write():
            current = self._packages.get(name)
            if current is None:
                raise NotFound(name)
            updated, removed = current.without_release(filename, upload_time)
            if removed is None:
                raise NotFound(name, f"Release not found: {name}/{filename}")
            await self._commit(name, updated if updated.releases else None)

        logger.info(f"Removed {name} {removed.version} ({filename})")
        return removed

    async def _commit(self, name: str, package: Package | None) -> None:
        # caller holds the write lock
        candidate = dict(self._packages)
        if package is None:
            candidate.pop(name, None)
        else:
            candidate[name] = package
        await self._store.save(candidate)
        self._packages = candidate

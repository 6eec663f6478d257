from __future__ import annotations

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Mapping

import aiofiles
from pydantic import ValidationError

from simple_index.core.config import INDEX_FILENAME
from simple_index.domain.errors import IOFailure, SerializationFailure
from simple_index.domain.models import Package

logger = logging.getLogger(__name__)


class SnapshotStore(ABC):
    """
    Abstract base class for persisting the full registry state.
    """

    @abstractmethod
    async def load(self) -> Dict[str, Package]:
        """Load the persisted state; an absent snapshot yields an empty mapping."""
        pass

    @abstractmethod
    async def save(self, state: Mapping[str, Package]) -> None:
        """Replace the persisted state with ``state`` in full."""
        pass


class JsonSnapshotStore(SnapshotStore):
    """
    Stores the registry as a single pretty-printed ``index.json``.

    Every save rewrites the whole file: the new content goes to
    ``index.json.tmp`` first and is then renamed over the live file, so a
    crash mid-write never leaves a truncated snapshot behind.
    """

    def __init__(self, base_path: Path, filename: str = INDEX_FILENAME):
        self._base_path = base_path
        self._path = base_path / filename
        self._tmp_path = base_path / f"{filename}.tmp"

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> Dict[str, Package]:
        if not self._path.exists():
            logger.info(f"No snapshot at {self._path}, starting with an empty registry")
            return {}

        try:
            async with aiofiles.open(self._path, "r", encoding="utf-8") as f:
                content = await f.read()
        except UnicodeDecodeError as e:
            raise SerializationFailure(f"Snapshot {self._path} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise IOFailure(f"Failed to read snapshot {self._path}: {e}") from e

        state = self.decode(content)
        logger.info(f"Loaded {len(state)} packages from {self._path}")
        return state

    async def save(self, state: Mapping[str, Package]) -> None:
        content = self.encode(state)
        try:
            self._base_path.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self._tmp_path, "w", encoding="utf-8") as f:
                await f.write(content)
                await f.flush()
                await asyncio.to_thread(os.fsync, f.fileno())
            self._tmp_path.replace(self._path)
        except OSError as e:
            if self._tmp_path.is_file():
                self._tmp_path.unlink()
            raise IOFailure(f"Failed to write snapshot {self._path}: {e}") from e

    @staticmethod
    def encode(state: Mapping[str, Package]) -> str:
        try:
            raw = {name: package.model_dump(mode="json") for name, package in state.items()}
            return json.dumps(raw, indent=2)
        except (TypeError, ValueError) as e:
            raise SerializationFailure(f"Failed to encode snapshot: {e}") from e

    @staticmethod
    def decode(content: str) -> Dict[str, Package]:
        try:
            raw = json.loads(content)
        except json.JSONDecodeError as e:
            raise SerializationFailure(f"Snapshot is not valid JSON: {e}") from e

        if not isinstance(raw, dict):
            raise SerializationFailure("Snapshot must be a JSON object keyed by package name")

        state: Dict[str, Package] = {}
        for name, entry in raw.items():
            try:
                package = Package.model_validate(entry)
            except ValidationError as e:
                raise SerializationFailure(f"Invalid snapshot entry for {name!r}: {e}") from e
            if package.name != name:
                raise SerializationFailure(
                    f"Snapshot key {name!r} does not match package name {package.name!r}"
                )
            state[name] = package
        return state

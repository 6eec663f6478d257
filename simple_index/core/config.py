"""
Runtime configuration for the package registry.

Settings are resolved from environment variables once per process:

1. ``SIMPLE_INDEX_DATA_DIR`` (default: ``<repo root>/data``)
2. ``SIMPLE_INDEX_ARTIFACT_EXTENSION`` (default: ``.whl``)
3. ``SIMPLE_INDEX_HOST`` / ``SIMPLE_INDEX_PORT`` (default: ``127.0.0.1:3000``)
4. ``SIMPLE_INDEX_LOG_LEVEL`` (default: ``INFO``)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "SIMPLE_INDEX_"
DATA_ROOT_ENV_VAR = f"{ENV_PREFIX}DATA_DIR"

# Resolve repository root (project root, not the Python package root)
_REPO_ROOT = Path(__file__).resolve().parents[2]
_DEFAULT_DATA_DIR = _REPO_ROOT / "data"

INDEX_FILENAME = "index.json"
PACKAGES_DIRNAME = "packages"


class Settings(BaseModel):
    """
    Top-level configuration for the registry process.
    """

    data_dir: Path = Field(
        default=_DEFAULT_DATA_DIR,
        description="Base path holding index.json and the packages/ blob tree.",
    )
    artifact_extension: str = Field(
        default=".whl",
        description="Only uploaded parts whose filename ends with this extension are processed.",
    )
    host: str = Field(default="127.0.0.1", description="Interface the HTTP server binds to.")
    port: int = Field(default=3000, ge=1, le=65535, description="Port the HTTP server binds to.")
    log_level: str = Field(default="INFO", description="Root logging level name.")

    @field_validator("data_dir")
    @classmethod
    def _expand_data_dir(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @field_validator("artifact_extension")
    @classmethod
    def _dotted_extension(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("artifact_extension must not be empty")
        return value if value.startswith(".") else f".{value}"

    @property
    def index_path(self) -> Path:
        return self.data_dir / INDEX_FILENAME

    @property
    def packages_dir(self) -> Path:
        return self.data_dir / PACKAGES_DIRNAME

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        values = {}
        for field in cls.model_fields:
            raw = env.get(f"{ENV_PREFIX}{field.upper()}")
            if raw:
                values[field] = raw
        return cls(**values)

"""Conference portal configuration.

Loads settings from a single YAML file (``portal.settings.yaml`` by default,
or the path in the ``PORTAL_SETTINGS`` environment variable) into pydantic
models. A missing file yields the defaults below.

Relative filesystem paths (database file, storage base directory) are
resolved against the directory holding the settings file so the service
behaves the same regardless of the working directory it is started from.
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("portal.settings.yaml")
SETTINGS_ENV_VAR = "PORTAL_SETTINGS"
MEMORY_DB = ":memory:"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _resolve(base: Path, value: str) -> str:
    candidate = Path(value)
    if candidate.is_absolute():
        return str(candidate)
    return str(base / candidate)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 3000
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class DatabaseSettings(BaseModel):
    path:      str = "portal.duckdb"
    pool_size: int = Field(default=10, ge=1)


class StorageSettings(BaseModel):
    """Where presentation files live on disk."""
    base_dir:                  str       = "."
    uploads_dir:               str       = "uploads"
    staging_dir:               str       = "staging"
    max_upload_mb:             int       = Field(default=50, ge=1)
    allowed_extensions:        List[str] = Field(default_factory=lambda: [".ppt", ".pptx"])
    remove_staging_after_copy: bool      = False

    @field_validator("allowed_extensions")
    @classmethod
    def _normalise_extensions(cls, value: List[str]) -> List[str]:
        normalised = []
        for ext in value:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalised.append(ext if ext.startswith(".") else f".{ext}")
        return normalised

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


class ProcessingSettings(BaseModel):
    run_on_startup:        bool  = True
    startup_delay_seconds: float = Field(default=2.0, ge=0)


class ConferenceSettings(BaseModel):
    default_conference_id: int = 1


class LoggingSettings(BaseModel):
    level: str = "info"


class AppConfig(BaseModel):
    server:     ServerSettings     = Field(default_factory=ServerSettings)
    database:   DatabaseSettings   = Field(default_factory=DatabaseSettings)
    storage:    StorageSettings    = Field(default_factory=StorageSettings)
    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)
    conference: ConferenceSettings = Field(default_factory=ConferenceSettings)
    logging:    LoggingSettings    = Field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(settings_path: Optional[Path] = None) -> AppConfig:
    """Load settings from YAML into an *AppConfig*.

    Args:
        settings_path: Explicit settings file. Falls back to the
            ``PORTAL_SETTINGS`` environment variable, then to
            ``portal.settings.yaml`` in the working directory.

    Returns:
        The parsed configuration with filesystem paths made absolute.
    """
    if settings_path is None:
        settings_path = Path(os.environ.get(SETTINGS_ENV_VAR, SETTINGS_FILE))
    settings_path = Path(settings_path)

    config = AppConfig(**_load_yaml(settings_path))

    base = settings_path.resolve().parent
    if config.database.path != MEMORY_DB:
        config.database.path = _resolve(base, config.database.path)
    config.storage.base_dir = _resolve(base, config.storage.base_dir)

    logger.info(
        "Settings loaded (server=%s:%s, database=%s, storage=%s)",
        config.server.host,
        config.server.port,
        config.database.path,
        config.storage.base_dir,
    )
    return config


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Return the process-wide configuration, loaded on first use."""
    return load_config()

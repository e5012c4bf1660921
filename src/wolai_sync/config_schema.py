"""Unified configuration schema for wolai_sync.

Pydantic models for the YAML config file, with one section per concern:
the Wolai connection, the vault being synced, and logging.

Usage:
    from wolai_sync.config_schema import build_config, to_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = to_config(unified, cli_overrides={"database_id": "..."})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class WolaiConfig(BaseModel):
    """Wolai API credentials and target database.

    All fields are optional so env vars and CLI args can supply them.
    """

    app_id: str | None = Field(default=None, description="Wolai app id")
    app_secret: str | None = Field(
        default=None, description="Wolai app secret"
    )
    database_id: str | None = Field(
        default=None, description="Database that receives synced notes"
    )
    max_retries: int = Field(
        default=0,
        ge=0,
        le=10,
        description="Retries for read-only API calls (0 disables)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Which local folder is synced and where engine state is kept."""

    vault_path: str | None = Field(
        default=None, description="Root folder of the Markdown vault"
    )
    sync_folder: str = Field(
        default="", description="Folder inside the vault that is synced"
    )
    state_dir: str = Field(
        default=".wolai_sync",
        description="Sync record directory, relative to the vault",
    )
    debounce_seconds: float = Field(default=1.0, ge=0, le=60)

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


class UnifiedConfig(BaseModel):
    """Top-level configuration; ``UnifiedConfig()`` is always valid."""

    wolai: WolaiConfig = Field(default_factory=WolaiConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from ``load_hierarchical_config()`` output."""
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


def yaml_fallbacks(unified: UnifiedConfig) -> dict:
    """Flatten the sections into the fallback dict ``load_config`` expects."""
    fallbacks = unified.wolai.model_dump(exclude_none=True)
    fallbacks.update(unified.sync.model_dump(exclude_none=True))
    return fallbacks


def to_config(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> Config:
    """Convert a ``UnifiedConfig`` into the ``Config`` dataclass.

    Precedence: CLI override > unified config value > default.  The
    result is NOT validated; call ``validate_config()`` separately.
    """
    from .config import Config

    overrides = cli_overrides or {}

    return Config(
        app_id=overrides.get("app_id") or unified.wolai.app_id or "",
        app_secret=overrides.get("app_secret")
        or unified.wolai.app_secret
        or "",
        database_id=overrides.get("database_id")
        or unified.wolai.database_id
        or "",
        vault_path=overrides.get("vault_path")
        or unified.sync.vault_path
        or ".",
        sync_folder=overrides.get("sync_folder", unified.sync.sync_folder),
        state_dir=unified.sync.state_dir,
        debounce_seconds=unified.sync.debounce_seconds,
        max_retries=unified.wolai.max_retries,
        debug=overrides.get("debug", False) or unified.wolai.debug,
    )

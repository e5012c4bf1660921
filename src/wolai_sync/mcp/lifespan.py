"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from ..config import load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import build_config, yaml_fallbacks
from ..core.async_utils import run_sync
from ..core.client import WolaiClient
from ..sync.engine import SyncEngine

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env, then YAML config files as fallbacks
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Create the WolaiClient and obtain a token (fail fast on bad credentials)
    - Build the SyncEngine over the configured vault

    Yields:
        Dict with 'client', 'engine' and 'config' keys.

    Raises:
        RuntimeError: If configuration is invalid or Wolai rejects the credentials.
    """
    logger.info("MCP server starting...")
    _stderr_print("Wolai Sync MCP Server starting...")

    try:
        load_dotenv()

        fallbacks: dict[str, Any] | None = None
        sources = []
        config_files = discover_config_files()
        if config_files:
            unified = build_config(load_hierarchical_config())
            fallbacks = yaml_fallbacks(unified)
            sources.append(f"config file: {config_files[0]}")

        overrides = config_overrides or {}
        config = load_config(
            app_id=overrides.get("app_id"),
            app_secret=overrides.get("app_secret"),
            database_id=overrides.get("database_id"),
            vault_path=overrides.get("vault_path"),
            sync_folder=overrides.get("sync_folder"),
            debug=overrides.get("debug", False),
            yaml_fallbacks=fallbacks,
        )

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        _stderr_print(f"  Vault: {config.vault_path}")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        raise RuntimeError(
            f"Configuration error: {e}. Ensure WOLAI_APP_ID and WOLAI_APP_SECRET are set."
        ) from e

    _stderr_print("  Validating Wolai credentials...")
    client = WolaiClient(config)
    try:
        await run_sync(client.get_valid_token)
    except Exception as e:
        logger.error("Failed to connect to Wolai: %s", e)
        _stderr_print("ERROR: Wolai connection failed.")
        _stderr_print(f"  {e}")
        raise RuntimeError(
            f"Wolai connection failed: {e}. Check WOLAI_APP_ID and WOLAI_APP_SECRET."
        ) from e

    engine = SyncEngine(client, config, Path(config.vault_path))
    _stderr_print("Server ready. Waiting for MCP client connection...")

    yield {"client": client, "engine": engine, "config": config}

    logger.info("MCP server shutting down")
    _stderr_print("Wolai Sync MCP Server shutting down.")

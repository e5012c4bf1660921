"""Configuration for the Wolai sync engine and MCP server.

Reads Wolai credentials and vault settings from CLI args, environment
variables, .env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    WOLAI_APP_ID: Wolai app id (required)
    WOLAI_APP_SECRET: Wolai app secret (required)
    WOLAI_DATABASE_ID: Target database id (required for syncing)
    WOLAI_VAULT_PATH: Root folder of the Markdown vault (default: cwd)
    WOLAI_SYNC_FOLDER: Folder inside the vault that is synced (default: vault root)
    WOLAI_STATE_DIR: Where sync records live, relative to the vault (default: .wolai_sync)
    WOLAI_DEBOUNCE_SECONDS: Quiet period before a changed file is synced (default: 1.0)
    WOLAI_MAX_RETRIES: Retries for read-only API calls (default: 0)
    WOLAI_DEBUG: Enable debug logging (default: false)
"""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class Config:
    app_id: str
    app_secret: str
    database_id: str = ""
    vault_path: str = "."
    sync_folder: str = ""
    state_dir: str = ".wolai_sync"
    debounce_seconds: float = 1.0
    max_retries: int = 0
    debug: bool = False


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid."""
    config.app_id = config.app_id.strip()
    config.app_secret = config.app_secret.strip()
    config.database_id = config.database_id.strip()
    config.sync_folder = config.sync_folder.strip().strip("/")

    if not config.app_id:
        raise ValueError(
            "Wolai app id cannot be empty. Set WOLAI_APP_ID environment variable."
        )
    if not config.app_secret:
        raise ValueError(
            "Wolai app secret cannot be empty. Set WOLAI_APP_SECRET environment variable."
        )
    if ".." in config.sync_folder.split("/"):
        raise ValueError(
            f"Invalid sync folder '{config.sync_folder}': must stay inside the vault"
        )
    if not (0 <= config.max_retries <= 10):
        raise ValueError(
            f"Invalid max_retries {config.max_retries}: must be between 0 and 10"
        )
    if not (0 <= config.debounce_seconds <= 60):
        raise ValueError(
            f"Invalid debounce_seconds {config.debounce_seconds}: must be between 0 and 60"
        )
    if not config.database_id:
        logger.warning(
            "No Wolai database id configured; sync operations will be refused"
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_number_env(key: str, cast: type, fallback, lo, hi):
    raw = os.getenv(key)
    if raw is None:
        return cast(fallback)
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {lo} and {hi}"
        ) from None
    if not (lo <= value <= hi):
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {lo} and {hi}"
        )
    return value


def load_config(
    app_id: str | None = None,
    app_secret: str | None = None,
    database_id: str | None = None,
    vault_path: str | None = None,
    sync_folder: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Raises:
        ValueError: If credentials are missing after checking all sources,
            or a numeric setting is out of range.
    """
    fb = yaml_fallbacks or {}

    final_app_id = app_id or os.getenv("WOLAI_APP_ID") or fb.get("app_id")
    if not final_app_id:
        raise ValueError(
            "Wolai app id not found. Set WOLAI_APP_ID environment variable, "
            "pass --app-id CLI argument, or add 'app_id' to config.yml."
        )

    final_app_secret = (
        app_secret or os.getenv("WOLAI_APP_SECRET") or fb.get("app_secret")
    )
    if not final_app_secret:
        raise ValueError(
            "Wolai app secret not found. Set WOLAI_APP_SECRET environment variable, "
            "pass --app-secret CLI argument, or add 'app_secret' to config.yml."
        )

    final_database_id = (
        database_id or os.getenv("WOLAI_DATABASE_ID") or fb.get("database_id") or ""
    )
    final_vault = vault_path or os.getenv("WOLAI_VAULT_PATH") or fb.get("vault_path") or "."
    final_folder = sync_folder
    if final_folder is None:
        final_folder = os.getenv("WOLAI_SYNC_FOLDER", fb.get("sync_folder", ""))
    final_state_dir = os.getenv("WOLAI_STATE_DIR") or fb.get("state_dir") or ".wolai_sync"

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("WOLAI_DEBUG")
        final_debug = (
            env_debug if env_debug is not None else bool(fb.get("debug", False))
        )

    final_retries = _get_number_env(
        "WOLAI_MAX_RETRIES", int, fb.get("max_retries", 0), 0, 10
    )
    final_debounce = _get_number_env(
        "WOLAI_DEBOUNCE_SECONDS", float, fb.get("debounce_seconds", 1.0), 0, 60
    )

    config = Config(
        app_id=str(final_app_id),
        app_secret=str(final_app_secret),
        database_id=str(final_database_id),
        vault_path=str(final_vault),
        sync_folder=str(final_folder or ""),
        state_dir=str(final_state_dir),
        debounce_seconds=final_debounce,
        max_retries=final_retries,
        debug=final_debug,
    )

    validate_config(config)

    return config

"""
Hierarchical configuration loader for wolai_sync.

Provides convention-based config file discovery, env var interpolation,
and hierarchical merge with "project wins" semantics.

Usage:
    from wolai_sync.config_loader import load_hierarchical_config

    config = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# Matches ${VAR} and ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` patterns with env values.

    ``${VAR:-default}`` uses *default* when VAR is unset or empty; an
    unset ``${VAR}`` becomes the empty string.
    """

    def _replace(match: re.Match) -> str:
        env_val = os.environ.get(match.group(1))
        if env_val:
            return env_val
        return match.group(2) or ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(obj: Any) -> Any:
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _interpolate_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


def discover_config_files() -> list[Path]:
    """Return existing config file paths in precedence order (highest first).

    Search order:
        1. ``WOLAI_SYNC_CONFIG`` env var (explicit single path)
        2. ``.wolai_sync/config.yml`` in CWD (project-level)
        3. ``~/.config/wolai_sync/config.yml`` (XDG global)
    """
    candidates: list[Path] = []

    env_path = os.environ.get("WOLAI_SYNC_CONFIG")
    if env_path:
        candidates.append(Path(env_path).expanduser().resolve())

    candidates.append(Path.cwd() / ".wolai_sync" / "config.yml")
    candidates.append(Path.home() / ".config" / "wolai_sync" / "config.yml")

    return [p for p in candidates if p.exists()]


_STARTER_CONFIG = """\
# wolai-sync configuration
#
# Credentials can also be set via environment variables:
#   WOLAI_APP_ID, WOLAI_APP_SECRET, WOLAI_DATABASE_ID
#
# wolai:
#   app_id: ${WOLAI_APP_ID}
#   app_secret: ${WOLAI_APP_SECRET}
#   database_id: your-database-id
#   max_retries: 0
#
# sync:
#   vault_path: ~/notes
#   sync_folder: wolai
#   state_dir: .wolai_sync
#   debounce_seconds: 1.0
#
# logging:
#   level: INFO
#   file: null
"""


def resolve_config_path() -> Path:
    """Return the active config file, or the project-level default path."""
    existing = discover_config_files()
    if existing:
        return existing[0]
    return Path.cwd() / ".wolai_sync" / "config.yml"


def ensure_config(target: Path | None = None) -> Path:
    """Ensure a config file exists, writing a commented starter if needed.

    Args:
        target: Explicit path to create. Defaults to
            ``resolve_config_path()``.

    Returns:
        Path to the config file (existing or newly created).
    """
    existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0]

    config_path = target or resolve_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", config_path)
    return config_path


def load_hierarchical_config() -> dict[str, Any]:
    """Load and merge all discovered config files.

    Files are loaded from lowest precedence to highest and each file's
    top-level keys replace those from earlier files.  Env var
    interpolation is applied after merging.  Returns ``{}`` when no
    config file exists.
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except (OSError, yaml.YAMLError):
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s), skipping",
                path,
                type(data).__name__,
            )

    return _interpolate_recursive(merged)

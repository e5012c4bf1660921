"""Tests for wolai_sync.config_schema: Pydantic config models."""

import pytest
from pydantic import ValidationError

from wolai_sync.config_schema import (
    LoggingConfig,
    SyncConfig,
    UnifiedConfig,
    WolaiConfig,
    build_config,
    to_config,
    yaml_fallbacks,
)


class TestModels:
    def test_defaults(self):
        unified = UnifiedConfig()
        assert unified.wolai.app_id is None
        assert unified.wolai.max_retries == 0
        assert unified.sync.sync_folder == ""
        assert unified.sync.state_dir == ".wolai_sync"
        assert unified.sync.debounce_seconds == 1.0
        assert unified.logging.level == "INFO"

    def test_frozen(self):
        with pytest.raises(ValidationError):
            WolaiConfig().app_id = "x"

    def test_retry_bounds(self):
        with pytest.raises(ValidationError):
            WolaiConfig(max_retries=11)

    def test_debounce_bounds(self):
        with pytest.raises(ValidationError):
            SyncConfig(debounce_seconds=-1)

    def test_logging_file(self):
        assert LoggingConfig(file="/tmp/x.log").file == "/tmp/x.log"


class TestBuildConfig:
    def test_empty(self):
        assert build_config({}) == UnifiedConfig()

    def test_sections(self):
        unified = build_config(
            {
                "wolai": {"app_id": "a", "database_id": "d", "max_retries": 2},
                "sync": {"vault_path": "~/notes", "sync_folder": "wolai"},
                "logging": {"level": "DEBUG"},
            }
        )
        assert unified.wolai.app_id == "a"
        assert unified.sync.sync_folder == "wolai"
        assert unified.logging.level == "DEBUG"

    def test_invalid_section_raises(self):
        with pytest.raises(ValidationError):
            build_config({"wolai": {"max_retries": "lots"}})


class TestYamlFallbacks:
    def test_flattens_and_drops_unset(self):
        unified = build_config(
            {"wolai": {"app_id": "a"}, "sync": {"sync_folder": "wolai"}}
        )
        fallbacks = yaml_fallbacks(unified)
        assert fallbacks["app_id"] == "a"
        assert fallbacks["sync_folder"] == "wolai"
        assert "app_secret" not in fallbacks
        assert "vault_path" not in fallbacks
        assert fallbacks["state_dir"] == ".wolai_sync"


class TestToConfig:
    def test_values_from_unified(self):
        unified = build_config(
            {
                "wolai": {"app_id": "a", "app_secret": "s", "max_retries": 1},
                "sync": {"vault_path": "/v", "sync_folder": "f", "debounce_seconds": 2},
            }
        )
        config = to_config(unified)
        assert config.app_id == "a"
        assert config.app_secret == "s"
        assert config.vault_path == "/v"
        assert config.sync_folder == "f"
        assert config.max_retries == 1
        assert config.debounce_seconds == 2

    def test_cli_overrides_win(self):
        unified = build_config({"wolai": {"app_id": "a", "database_id": "d"}})
        config = to_config(
            unified, {"app_id": "cli", "sync_folder": "", "debug": True}
        )
        assert config.app_id == "cli"
        assert config.database_id == "d"
        assert config.sync_folder == ""
        assert config.debug is True

    def test_defaults_when_empty(self):
        config = to_config(UnifiedConfig())
        assert config.app_id == ""
        assert config.vault_path == "."

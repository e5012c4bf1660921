"""Tests for wolai_sync.config_loader: hierarchical config loading."""

import textwrap

import pytest
import yaml

from wolai_sync.config_loader import (
    _interpolate_recursive,
    discover_config_files,
    ensure_config,
    interpolate_env_vars,
    load_hierarchical_config,
    resolve_config_path,
)


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Run with an empty CWD and HOME so no real config files are found."""
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("WOLAI_SYNC_CONFIG", raising=False)
    monkeypatch.chdir(work)
    return tmp_path


def _write_yaml(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


# -------------------------------------------------------------------------
# Env var interpolation
# -------------------------------------------------------------------------


class TestInterpolateEnvVars:
    """Tests for ${VAR} and ${VAR:-default} substitution."""

    def test_replaces_set_var(self, monkeypatch):
        monkeypatch.setenv("MY_APP", "wolai")
        assert interpolate_env_vars("${MY_APP}") == "wolai"

    def test_unset_var_replaced_with_empty(self, monkeypatch):
        monkeypatch.delenv("UNSET_VAR_XYZ", raising=False)
        assert interpolate_env_vars("${UNSET_VAR_XYZ}") == ""

    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("UNSET_VAR_XYZ", raising=False)
        assert interpolate_env_vars("${UNSET_VAR_XYZ:-fallback}") == "fallback"

    def test_default_ignored_when_set(self, monkeypatch):
        monkeypatch.setenv("MY_PORT", "8080")
        assert interpolate_env_vars("${MY_PORT:-80}") == "8080"

    def test_embedded(self, monkeypatch):
        monkeypatch.setenv("NOTES", "/n")
        assert interpolate_env_vars("path=${NOTES}/wolai") == "path=/n/wolai"

    def test_recursive(self, monkeypatch):
        monkeypatch.setenv("SECRET", "s3")
        data = {"wolai": {"app_secret": "${SECRET}", "retries": 2}, "l": ["${SECRET}"]}
        assert _interpolate_recursive(data) == {
            "wolai": {"app_secret": "s3", "retries": 2},
            "l": ["s3"],
        }


# -------------------------------------------------------------------------
# Discovery and loading
# -------------------------------------------------------------------------


class TestDiscovery:
    def test_nothing_found(self, isolated):
        assert discover_config_files() == []
        assert load_hierarchical_config() == {}

    def test_precedence_order(self, isolated, monkeypatch):
        explicit = _write_yaml(isolated / "explicit.yml", "a: 1\n")
        project = _write_yaml(isolated / "work" / ".wolai_sync" / "config.yml", "a: 2\n")
        user = _write_yaml(
            isolated / "home" / ".config" / "wolai_sync" / "config.yml", "a: 3\n"
        )
        monkeypatch.setenv("WOLAI_SYNC_CONFIG", str(explicit))

        found = discover_config_files()

        assert found == [explicit.resolve(), project, user]

    def test_project_wins_shallow_merge(self, isolated):
        _write_yaml(
            isolated / "home" / ".config" / "wolai_sync" / "config.yml",
            """
            wolai:
              app_id: global
            logging:
              level: DEBUG
            """,
        )
        _write_yaml(
            isolated / "work" / ".wolai_sync" / "config.yml",
            """
            wolai:
              database_id: project-db
            """,
        )

        merged = load_hierarchical_config()

        # Top-level sections are replaced, not deep-merged
        assert merged["wolai"] == {"database_id": "project-db"}
        assert merged["logging"] == {"level": "DEBUG"}

    def test_interpolation_applied(self, isolated, monkeypatch):
        monkeypatch.setenv("WOLAI_APP_ID", "from-env")
        _write_yaml(
            isolated / "work" / ".wolai_sync" / "config.yml",
            "wolai:\n  app_id: ${WOLAI_APP_ID}\n",
        )
        assert load_hierarchical_config()["wolai"]["app_id"] == "from-env"

    def test_non_dict_root_skipped(self, isolated):
        _write_yaml(isolated / "work" / ".wolai_sync" / "config.yml", "- a\n- b\n")
        assert load_hierarchical_config() == {}

    def test_invalid_yaml_raises(self, isolated):
        _write_yaml(isolated / "work" / ".wolai_sync" / "config.yml", "a: [\n")
        with pytest.raises(yaml.YAMLError):
            load_hierarchical_config()


class TestEnsureConfig:
    def test_writes_starter(self, isolated):
        path = ensure_config()
        assert path == isolated / "work" / ".wolai_sync" / "config.yml"
        text = path.read_text(encoding="utf-8")
        assert "WOLAI_APP_ID" in text
        # Starter is all comments, so it loads as empty
        assert yaml.safe_load(text) is None

    def test_existing_file_kept(self, isolated):
        existing = _write_yaml(isolated / "work" / ".wolai_sync" / "config.yml", "a: 1\n")
        assert ensure_config() == existing
        assert existing.read_text(encoding="utf-8") == "a: 1\n"

    def test_explicit_target(self, isolated):
        target = isolated / "custom" / "c.yml"
        assert ensure_config(target) == target
        assert target.exists()

    def test_resolve_default_path(self, isolated):
        assert resolve_config_path() == isolated / "work" / ".wolai_sync" / "config.yml"

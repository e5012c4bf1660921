"""Shared pytest fixtures for wolai-sync tests."""

from unittest.mock import MagicMock

import pytest

from wolai_sync.config import Config


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require live Wolai credentials",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring live Wolai credentials"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture
def mock_config(tmp_path):
    """Config pointing at an empty temporary vault."""
    return Config(
        app_id="app-id",
        app_secret="app-secret",
        database_id="db123",
        vault_path=str(tmp_path),
    )


@pytest.fixture
def mock_wolai_client(mock_config):
    """MagicMock standing in for a WolaiClient."""
    from wolai_sync.core.client import WolaiClient

    client = MagicMock(spec=WolaiClient)
    client.config = mock_config
    return client


"""Tests for logger.py: setup_logging() and JsonFormatter.

Strategy: mock logging.basicConfig and inspect the handlers it receives,
since pytest's log capture plugin interferes with real basicConfig calls.
"""

import json
import logging
import sys
from unittest.mock import patch

from wolai_sync.logger import JsonFormatter, setup_logging


def _handlers(mock_basic):
    mock_basic.assert_called_once()
    return mock_basic.call_args[1]["handlers"]


class TestSetupLogging:
    @patch("wolai_sync.logger.logging.basicConfig")
    def test_cli_mode_logs_to_stderr(self, mock_basic):
        setup_logging(mode="cli")

        handlers = _handlers(mock_basic)
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert handlers[0].stream is sys.stderr

    @patch("wolai_sync.logger.logging.basicConfig")
    def test_cli_mode_with_file(self, mock_basic, tmp_path):
        log_file = tmp_path / "cli.log"
        setup_logging(mode="cli", log_file=str(log_file))

        handlers = _handlers(mock_basic)
        assert len(handlers) == 2
        assert isinstance(handlers[1], logging.FileHandler)
        handlers[1].close()

    @patch("wolai_sync.logger.logging.basicConfig")
    def test_mcp_mode_logs_to_file_only(self, mock_basic, tmp_path):
        log_file = tmp_path / "mcp.log"
        setup_logging(mode="mcp", log_file=str(log_file))

        handlers = _handlers(mock_basic)
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.FileHandler)
        assert handlers[0].baseFilename == str(log_file)
        handlers[0].close()

    @patch("wolai_sync.logger.logging.basicConfig")
    def test_mcp_default_level_is_warning(self, mock_basic, tmp_path, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging(mode="mcp", log_file=str(tmp_path / "x.log"))

        assert mock_basic.call_args[1]["level"] == logging.WARNING
        _handlers(mock_basic)[0].close()

    @patch("wolai_sync.logger.logging.basicConfig")
    def test_debug_overrides_level(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(mode="cli", debug=True)

        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    @patch("wolai_sync.logger.logging.basicConfig")
    def test_env_level(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        setup_logging(mode="cli")

        assert mock_basic.call_args[1]["level"] == logging.ERROR

    @patch("wolai_sync.logger.logging.basicConfig")
    def test_unknown_env_level_falls_back_to_info(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        setup_logging(mode="cli")

        assert mock_basic.call_args[1]["level"] == logging.INFO

    @patch("wolai_sync.logger.logging.basicConfig")
    def test_third_party_quieted(self, mock_basic, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging(mode="cli")

        assert logging.getLogger("urllib3").level == logging.WARNING
        assert logging.getLogger("charset_normalizer").level == logging.WARNING

    @patch("wolai_sync.logger.logging.basicConfig")
    def test_json_format(self, mock_basic):
        setup_logging(mode="cli", debug_format="json")

        assert isinstance(_handlers(mock_basic)[0].formatter, JsonFormatter)


class TestJsonFormatter:
    def _record(self, msg, *args, exc_info=None):
        return logging.LogRecord(
            name="wolai_sync.sync.engine",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg=msg,
            args=args,
            exc_info=exc_info,
        )

    def test_fields(self):
        line = JsonFormatter().format(self._record("Synced %s", "a.md"))
        entry = json.loads(line)
        assert entry["level"] == "INFO"
        assert entry["logger"] == "wolai_sync.sync.engine"
        assert entry["msg"] == "Synced a.md"
        assert "ts" in entry
        assert "\n" not in line

    def test_unicode_kept(self):
        line = JsonFormatter().format(self._record("标题 %s", "中文"))
        assert "标题 中文" in line

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            exc_info = sys.exc_info()
        entry = json.loads(JsonFormatter().format(self._record("failed", exc_info=exc_info)))
        assert "RuntimeError: boom" in entry["exc"]

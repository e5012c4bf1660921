"""Tests for the MCP server module: tool listing, routing, and CLI flags."""

from unittest.mock import AsyncMock, MagicMock, patch

import mcp.types as types
import pytest

from wolai_sync.mcp import server
from wolai_sync.mcp.server import (
    build_parser,
    get_engine,
    handle_call_tool,
    handle_list_tools,
    overrides_from_args,
    set_engine,
)


@pytest.fixture
def engine():
    engine = MagicMock()
    engine.client.validate_connection.return_value = True
    set_engine(engine)
    yield engine
    set_engine(None)


def _text(result: types.CallToolResult) -> str:
    content = result.content[0]
    assert isinstance(content, types.TextContent)
    return content.text


class TestAccessors:
    def test_get_engine_before_startup(self):
        set_engine(None)
        with pytest.raises(RuntimeError, match="not initialized"):
            get_engine()

    def test_set_and_get(self, engine):
        assert get_engine() is engine


class TestListTools:
    async def test_ping_first(self):
        tools = await handle_list_tools()
        names = [t.name for t in tools]
        assert names[0] == "ping"
        assert "sync_file" in names
        assert len(names) == len(set(names))


class TestCallTool:
    async def test_ping(self, engine):
        result = await handle_call_tool("ping", {})
        assert "connected successfully" in _text(result)

    async def test_ping_rejected(self, engine):
        engine.client.validate_connection.return_value = False
        result = await handle_call_tool("ping", {})
        assert result.isError is True
        assert "auth_error" in _text(result)

    async def test_sync_tool_routed(self, engine):
        with patch.object(
            server,
            "handle_sync_tool",
            AsyncMock(return_value=types.CallToolResult(content=[])),
        ) as mock_handle:
            await handle_call_tool("full_sync", None)
        mock_handle.assert_awaited_once_with("full_sync", None, engine)

    async def test_unknown_tool(self, engine):
        result = await handle_call_tool("create_ticket", {})
        assert "unknown_tool" in _text(result)


class TestParser:
    def test_no_flags(self):
        args = build_parser().parse_args([])
        assert overrides_from_args(args) == {"log_file": "/tmp/wolai-sync.log"}

    def test_all_flags(self):
        args = build_parser().parse_args(
            [
                "--app-id", "a",
                "--app-secret", "s",
                "--database-id", "d",
                "--vault", "/v",
                "--sync-folder", "wolai",
                "--log-file", "/tmp/x.log",
                "--debug",
            ]
        )
        assert overrides_from_args(args) == {
            "app_id": "a",
            "app_secret": "s",
            "database_id": "d",
            "vault_path": "/v",
            "sync_folder": "wolai",
            "log_file": "/tmp/x.log",
            "debug": True,
        }


class TestRun:
    def test_init_config_writes_file_and_exits(self, tmp_path, monkeypatch):
        target = tmp_path / ".wolai_sync" / "config.yml"
        monkeypatch.setattr("sys.argv", ["wolai-sync-mcp", "--init-config"])
        with (
            patch.object(server, "ensure_config", return_value=target) as mock_ensure,
            patch.object(server.asyncio, "run") as mock_run,
        ):
            server.run()
        mock_ensure.assert_called_once_with()
        mock_run.assert_not_called()

    def test_runtime_error_exits_1(self, monkeypatch):
        monkeypatch.setattr("sys.argv", ["wolai-sync-mcp"])

        def _fail(coro):
            coro.close()
            raise RuntimeError("Configuration error")

        with patch.object(server.asyncio, "run", side_effect=_fail):
            with pytest.raises(SystemExit) as exc:
                server.run()
        assert exc.value.code == 1

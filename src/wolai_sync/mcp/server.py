"""MCP Server exposing the Wolai sync engine over stdio.

Transport: stdio (for Claude Desktop/Code integration)
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..config_loader import ensure_config
from ..core.async_utils import run_sync
from ..logger import setup_logging
from ..sync.engine import SyncEngine
from .lifespan import server_lifespan
from .tools import SYNC_TOOL_NAMES, SYNC_TOOLS, build_error_response, handle_sync_tool

logger = logging.getLogger(__name__)

server = Server("wolai-sync")

# Initialized in main() from the lifespan context
_engine: SyncEngine | None = None


# ---------------------------------------------------------------------------
# Ping tool (always available)
# ---------------------------------------------------------------------------

PING_TOOL = types.Tool(
    name="ping",
    description="Test Wolai connectivity with the configured app credentials",
    inputSchema={
        "type": "object",
        "properties": {},
        "required": [],
    },
)


async def _handle_ping(engine: SyncEngine) -> types.CallToolResult:
    ok = await run_sync(engine.client.validate_connection)
    if not ok:
        return build_error_response(
            "auth_error",
            "Wolai rejected the app credentials",
            "Check WOLAI_APP_ID and WOLAI_APP_SECRET.",
        )
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text",
                text=f"Wolai sync server {__version__} connected successfully.",
            )
        ]
    )


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_engine() -> SyncEngine:
    """Get the global SyncEngine instance.

    Raises:
        RuntimeError: If the engine is not initialized
    """
    if _engine is None:
        raise RuntimeError("SyncEngine not initialized. Server lifespan not started.")
    return _engine


def set_engine(engine: SyncEngine | None) -> None:
    """Set the global SyncEngine instance, or None to clear it."""
    global _engine
    _engine = engine


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List the ping tool and every sync tool."""
    return [PING_TOOL, *SYNC_TOOLS]


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Route a tool call to its handler."""
    engine = get_engine()
    if name == "ping":
        return await _handle_ping(engine)
    if name in SYNC_TOOL_NAMES:
        return await handle_sync_tool(name, arguments, engine)
    return build_error_response(
        "unknown_tool",
        f"Unknown tool: {name}",
        "Use list_tools to see available tools.",
    )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Logging goes to a file only; stdout carries the JSON-RPC stream.
    """
    overrides = config_overrides or {}
    setup_logging(
        mode="mcp",
        debug=overrides.get("debug", False),
        log_file=overrides.get("log_file"),
    )
    logger.info("Registered %d tools", len(SYNC_TOOLS) + 1)

    # set_engine() is called here rather than in the lifespan so that
    # `python -m wolai_sync.mcp.server` updates this module's global.
    async with server_lifespan(config_overrides=config_overrides) as ctx:
        set_engine(ctx["engine"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="wolai-sync",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(read_stream, write_stream, init_options)
        finally:
            set_engine(None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Wolai Sync MCP Server - sync a Markdown vault with a Wolai database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .wolai_sync/config.yml)
  wolai-sync-mcp

  # Sync only the notes/wolai folder of a vault
  wolai-sync-mcp --vault ~/notes --sync-folder wolai

  # Override credentials and target database
  wolai-sync-mcp --app-id ID --app-secret SECRET --database-id DB

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )
    parser.add_argument("--app-id", help="Override WOLAI_APP_ID")
    parser.add_argument(
        "--app-secret",
        help="Override WOLAI_APP_SECRET"
        " (visible in process list -- prefer the env var)",
    )
    parser.add_argument("--database-id", help="Override WOLAI_DATABASE_ID")
    parser.add_argument("--vault", help="Vault root directory (default: current directory)")
    parser.add_argument(
        "--sync-folder",
        help="Vault-relative folder to sync (default: the whole vault)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--log-file",
        default="/tmp/wolai-sync.log",
        help="Log file path (default: /tmp/wolai-sync.log)",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write a starter .wolai_sync/config.yml and exit",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"wolai-sync version {__version__}",
    )
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict:
    """Collect the CLI flags that were actually given."""
    mapping = {
        "app_id": args.app_id,
        "app_secret": args.app_secret,
        "database_id": args.database_id,
        "vault_path": args.vault,
        "sync_folder": args.sync_folder,
        "log_file": args.log_file,
    }
    overrides = {key: value for key, value in mapping.items() if value}
    if args.debug:
        overrides["debug"] = True
    return overrides


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    args = build_parser().parse_args()
    if args.init_config:
        path = ensure_config()
        print(f"Config file: {path}", file=sys.stderr)
        return

    config_overrides = overrides_from_args(args)

    shown = [k for k in config_overrides if k != "app_secret"]
    if shown:
        print(f"Config overrides from CLI: {', '.join(shown)}", file=sys.stderr)

    try:
        asyncio.run(main(config_overrides=config_overrides or None))
    except RuntimeError:
        # Already reported on stderr by the lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()

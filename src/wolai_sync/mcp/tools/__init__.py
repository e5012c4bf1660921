"""MCP tool handlers wrapping the Wolai sync engine."""

from .errors import build_error_response, translate_api_error
from .sync import SYNC_TOOL_NAMES, SYNC_TOOLS, handle_sync_tool

__all__ = [
    "SYNC_TOOLS",
    "SYNC_TOOL_NAMES",
    "build_error_response",
    "handle_sync_tool",
    "translate_api_error",
]

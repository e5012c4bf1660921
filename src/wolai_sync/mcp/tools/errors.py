"""Error response builders for MCP tool handlers.

Structured error responses carry a corrective action so an agent can
recover without human intervention.
"""

import mcp.types as types

from ...core.errors import WolaiAPIError, WolaiAuthError


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, auth_error, rate_limited,
            validation_error, server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take

    Examples:
        >>> build_error_response("not_found", "notes/a.md not found", "Check the path.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def translate_api_error(error: WolaiAPIError) -> types.CallToolResult:
    """Map a Wolai client error onto a structured error response."""
    match error:
        case WolaiAuthError():
            return build_error_response(
                "auth_error",
                str(error),
                "Check WOLAI_APP_ID and WOLAI_APP_SECRET.",
            )
        case WolaiAPIError(status_code=404):
            return build_error_response(
                "not_found",
                str(error),
                "Check WOLAI_DATABASE_ID and that the app can access the database.",
            )
        case WolaiAPIError(status_code=429):
            return build_error_response(
                "rate_limited",
                str(error),
                "Wait a minute, then retry. Use sync_stats to see call counts.",
            )
        case _:
            return build_error_response(
                "server_error",
                str(error),
                "Retry later or check Wolai service status.",
            )

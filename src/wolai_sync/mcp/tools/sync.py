"""MCP tool handlers for the Wolai sync engine.

Each tool is a thin adapter over one ``SyncEngine`` host operation:

- ``sync_file`` -- sync one document (``force`` skips the status check).
- ``full_sync`` -- push pending documents, then pull waiting rows.
- ``sync_inbound`` -- pull waiting rows only.
- ``set_file_status`` -- overwrite a document's ``sync_status``.
- ``remove_record`` / ``clear_records`` -- drop stored fingerprints.
- ``sync_stats`` -- record counts and API call counters.
- ``validate_sync`` -- check configuration and connectivity.
- ``reset_api_stats`` -- zero the API call counters.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...converters.frontmatter import SyncStatus
from ...core.errors import WolaiAPIError
from ...sync.engine import SyncEngine
from ...sync.reporter import format_full_sync, format_stats, full_sync_to_json
from .errors import build_error_response, translate_api_error

logger = logging.getLogger(__name__)


def _path_property(description: str) -> dict[str, str]:
    return {"type": "string", "description": description}


def _annotations(read_only: bool, idempotent: bool = True) -> types.ToolAnnotations:
    return types.ToolAnnotations(
        readOnlyHint=read_only,
        destructiveHint=False,
        idempotentHint=idempotent,
        openWorldHint=not read_only,
    )


_EMPTY_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}, "required": []}

SYNC_TOOLS: list[types.Tool] = [
    types.Tool(
        name="sync_file",
        description=(
            "Sync one Markdown document to Wolai. Documents whose status is "
            "Pending or Modified (or Synced but edited since) are pushed as a "
            "new database row. Set force to push regardless of status."
        ),
        annotations=_annotations(read_only=False, idempotent=False),
        inputSchema={
            "type": "object",
            "properties": {
                "path": _path_property("Document path relative to the vault"),
                "force": {
                    "type": "boolean",
                    "default": False,
                    "description": "Push even if the document is already Synced",
                },
            },
            "required": ["path"],
        },
    ),
    types.Tool(
        name="full_sync",
        description=(
            "Push every document that needs syncing, then write every Wolai "
            "row marked WaitingForInbound into the sync folder."
        ),
        annotations=_annotations(read_only=False, idempotent=False),
        inputSchema=_EMPTY_SCHEMA,
    ),
    types.Tool(
        name="sync_inbound",
        description="Write every Wolai row marked WaitingForInbound into the sync folder.",
        annotations=_annotations(read_only=False),
        inputSchema=_EMPTY_SCHEMA,
    ),
    types.Tool(
        name="set_file_status",
        description="Overwrite the sync_status in a document's front-matter.",
        annotations=_annotations(read_only=False),
        inputSchema={
            "type": "object",
            "properties": {
                "path": _path_property("Document path relative to the vault"),
                "status": {
                    "type": "string",
                    "enum": [s.value for s in SyncStatus],
                    "description": "New sync status",
                },
            },
            "required": ["path", "status"],
        },
    ),
    types.Tool(
        name="remove_record",
        description="Forget the stored sync fingerprint of one document.",
        annotations=_annotations(read_only=False),
        inputSchema={
            "type": "object",
            "properties": {
                "path": _path_property("Document path relative to the vault"),
            },
            "required": ["path"],
        },
    ),
    types.Tool(
        name="clear_records",
        description="Forget every stored sync fingerprint.",
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema=_EMPTY_SCHEMA,
    ),
    types.Tool(
        name="sync_stats",
        description="Show sync record counts and Wolai API call counters.",
        annotations=_annotations(read_only=True),
        inputSchema=_EMPTY_SCHEMA,
    ),
    types.Tool(
        name="validate_sync",
        description="Check the database id, sync folder, and Wolai connection.",
        annotations=_annotations(read_only=True),
        inputSchema=_EMPTY_SCHEMA,
    ),
    types.Tool(
        name="reset_api_stats",
        description="Reset the Wolai API call counters to zero.",
        annotations=_annotations(read_only=False),
        inputSchema=_EMPTY_SCHEMA,
    ),
]

SYNC_TOOL_NAMES = frozenset(tool.name for tool in SYNC_TOOLS)


def _text(text: str, structured: dict | None = None) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=structured,
    )


def _require_path(args: dict[str, Any]) -> str:
    path = args.get("path")
    if not path or not isinstance(path, str):
        raise ValueError("path is required")
    return path


async def handle_sync_tool(
    name: str,
    arguments: dict[str, Any] | None,
    engine: SyncEngine,
) -> types.CallToolResult:
    """Dispatch and execute a sync tool."""
    args = arguments or {}

    try:
        match name:
            case "sync_file":
                return await _handle_sync_file(args, engine)
            case "full_sync":
                result = await engine.full_sync()
                return _text(format_full_sync(result), full_sync_to_json(result))
            case "sync_inbound":
                count = await engine.sync_inbound()
                return _text(f"Pulled {count} documents from Wolai", {"inbound_count": count})
            case "set_file_status":
                return await _handle_set_file_status(args, engine)
            case "remove_record":
                path = _require_path(args)
                removed = await engine.remove_record(path)
                text = f"Removed sync record for {path}" if removed else f"No sync record for {path}"
                return _text(text, {"removed": removed})
            case "clear_records":
                cleared = await engine.clear_records()
                if not cleared:
                    return build_error_response(
                        "server_error",
                        "Could not write the sync record file",
                        "Check permissions on the state directory.",
                    )
                return _text("All sync records cleared", {"cleared": True})
            case "sync_stats":
                stats = engine.get_stats()
                api = engine.get_api_call_stats()
                return _text(
                    format_stats(stats, api),
                    {
                        "records": stats.model_dump(),
                        "api_calls": api.to_dict(),
                        "last_sync_time": engine.last_sync_time,
                    },
                )
            case "validate_sync":
                ok = await engine.validate_preconditions()
                text = "Sync configuration is valid" if ok else (
                    "Sync is not possible: check database id, sync folder, and credentials"
                )
                return _text(text, {"valid": ok})
            case "reset_api_stats":
                engine.reset_api_call_stats()
                return _text("API call counters reset", {"reset": True})
            case _:
                raise ValueError(f"Unknown sync tool: {name}")

    except ValueError as exc:
        return build_error_response(
            "validation_error",
            str(exc),
            "Check parameter values and retry.",
        )
    except WolaiAPIError as exc:
        return translate_api_error(exc)
    except Exception as exc:
        logger.exception("Sync tool error: %s", exc)
        return build_error_response(
            "server_error",
            str(exc),
            "Check the sync configuration and Wolai connectivity.",
        )


async def _handle_sync_file(
    args: dict[str, Any], engine: SyncEngine
) -> types.CallToolResult:
    path = _require_path(args)
    if not path.endswith(".md"):
        raise ValueError(f"Not a Markdown document: {path}")

    if args.get("force", False):
        ok = await engine.force_sync(path)
    else:
        ok = await engine.sync_one(path)

    if not ok:
        return build_error_response(
            "sync_failed",
            f"Sync of {path} failed",
            "See the server log for details, fix the cause, then retry.",
        )
    record = engine.get_record(path)
    structured: dict[str, Any] = {"path": path, "synced": True}
    if record is not None:
        structured["wolai_id"] = record.wolai_row_id
    return _text(f"{path} is in sync with Wolai", structured)


async def _handle_set_file_status(
    args: dict[str, Any], engine: SyncEngine
) -> types.CallToolResult:
    path = _require_path(args)
    raw_status = args.get("status")
    try:
        status = SyncStatus(raw_status)
    except ValueError:
        raise ValueError(
            f"Invalid status {raw_status!r}; use one of "
            + ", ".join(s.value for s in SyncStatus)
        ) from None

    if not await engine.set_file_status(path, status):
        return build_error_response(
            "not_found",
            f"Could not update {path}",
            "Check that the document exists inside the vault.",
        )
    return _text(f"{path} marked {status.value}", {"path": path, "status": status.value})

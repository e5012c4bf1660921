"""Sync result formatting for people and for MCP structured output.

- ``format_full_sync`` -- summary of one full sync pass.
- ``format_stats`` -- record-store and API call counters.
- ``full_sync_to_json`` -- structured dict for MCP tool output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .models import SyncDirection

if TYPE_CHECKING:
    from ..core.client import ApiCallStats
    from .models import FullSyncResult, SyncStats


def format_full_sync(result: FullSyncResult) -> str:
    """Format a full sync result as human-readable text.

    Per-document lines are listed only for pushes, pulls, and errors;
    skipped documents are counted.
    """
    if not result.valid:
        return (
            "Sync skipped: database id, sync folder, or Wolai connection "
            "is not usable."
        )

    lines = [
        f"Sync complete: {result.outbound_count} pushed, "
        f"{result.inbound_count} pulled, {len(result.errors)} errors",
        "",
    ]

    pushed = [
        r
        for r in result.results
        if r.direction is SyncDirection.OUTBOUND and r.success and not r.skipped
    ]
    pulled = [
        r
        for r in result.results
        if r.direction is SyncDirection.INBOUND and r.success
    ]

    if pushed:
        lines.append("Pushed to Wolai:")
        for r in pushed:
            lines.append(f"  {r.path} -> {r.wolai_id}")
        lines.append("")

    if pulled:
        lines.append("Pulled from Wolai:")
        for r in pulled:
            lines.append(f"  {r.wolai_id} -> {r.path}")
        lines.append("")

    if result.errors:
        lines.append("Errors:")
        for r in result.errors:
            lines.append(f"  {r.path}: {r.error}")
        lines.append("")

    return "\n".join(lines).rstrip()


def format_stats(stats: SyncStats, api: ApiCallStats | None = None) -> str:
    lines = [
        f"Sync records: {stats.total} total, {stats.synced} synced, "
        f"{stats.pending} pending"
    ]
    if api is not None:
        lines.append(f"API calls: {api.total} total, {api.today} today")
    return "\n".join(lines)


def full_sync_to_json(result: FullSyncResult) -> dict:
    """Structured dict suitable for MCP ``structuredContent``."""
    return {
        "valid": result.valid,
        "outbound_count": result.outbound_count,
        "inbound_count": result.inbound_count,
        "results": [
            r.model_dump(mode="json", exclude_none=True)
            for r in result.results
        ],
    }

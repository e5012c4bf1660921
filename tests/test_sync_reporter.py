"""Tests for sync reporter formatting functions."""

from __future__ import annotations

from wolai_sync.core.client import ApiCallStats
from wolai_sync.sync.models import (
    FullSyncResult,
    SyncDirection,
    SyncResult,
    SyncStats,
)
from wolai_sync.sync.reporter import (
    format_full_sync,
    format_stats,
    full_sync_to_json,
)


def _result(**kwargs) -> FullSyncResult:
    results = [
        SyncResult(
            path="notes/a.md",
            direction=SyncDirection.OUTBOUND,
            success=True,
            wolai_id="page1",
        ),
        SyncResult(
            path="notes/b.md",
            direction=SyncDirection.OUTBOUND,
            success=True,
            skipped=True,
        ),
        SyncResult(
            path="notes/c.md",
            direction=SyncDirection.INBOUND,
            success=True,
            wolai_id="page9",
        ),
        SyncResult(
            path="notes/d.md",
            direction=SyncDirection.OUTBOUND,
            success=False,
            error="Wolai API error (500)",
        ),
    ]
    defaults = dict(outbound_count=1, inbound_count=1, results=results)
    defaults.update(kwargs)
    return FullSyncResult(**defaults)


class TestFormatFullSync:
    def test_summary_line(self):
        text = format_full_sync(_result())
        assert text.splitlines()[0] == "Sync complete: 1 pushed, 1 pulled, 1 errors"

    def test_sections(self):
        text = format_full_sync(_result())
        assert "Pushed to Wolai:\n  notes/a.md -> page1" in text
        assert "Pulled from Wolai:\n  page9 -> notes/c.md" in text
        assert "Errors:\n  notes/d.md: Wolai API error (500)" in text

    def test_skipped_not_listed(self):
        assert "notes/b.md" not in format_full_sync(_result())

    def test_empty_pass_is_one_line(self):
        text = format_full_sync(FullSyncResult())
        assert text == "Sync complete: 0 pushed, 0 pulled, 0 errors"

    def test_invalid(self):
        text = format_full_sync(FullSyncResult(valid=False))
        assert text.startswith("Sync skipped:")


class TestFormatStats:
    def test_records_only(self):
        text = format_stats(SyncStats(total=3, synced=2, pending=1))
        assert text == "Sync records: 3 total, 2 synced, 1 pending"

    def test_with_api_calls(self):
        api = ApiCallStats(total=7, today=4)
        text = format_stats(SyncStats(), api)
        assert text.splitlines()[1] == "API calls: 7 total, 4 today"


class TestFullSyncToJson:
    def test_structure(self):
        data = full_sync_to_json(_result())
        assert data["valid"] is True
        assert data["outbound_count"] == 1
        assert data["inbound_count"] == 1
        assert len(data["results"]) == 4
        assert data["results"][0] == {
            "path": "notes/a.md",
            "direction": "outbound",
            "success": True,
            "skipped": False,
            "wolai_id": "page1",
        }

    def test_error_kept(self):
        data = full_sync_to_json(_result())
        assert data["results"][3]["error"] == "Wolai API error (500)"
        assert "wolai_id" not in data["results"][3]

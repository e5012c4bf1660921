"""Pydantic models for the Wolai sync engine.

- ``SyncRecord``: last-known fingerprint of one synced document.
- ``SyncDirection``: which way a single result moved content.
- ``SyncResult``: outcome of syncing one document or remote row.
- ``FullSyncResult``: counts for one full reconciliation pass.
- ``SyncStats``: record-store summary.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SyncRecord(BaseModel):
    """Fingerprint of a document as of its last successful sync.

    Serialised with the camelCase keys used by the record file
    (``filePath``, ``lastModified``, ``wolaiRowId``, ``synced``, ``hash``).

    Attributes:
        file_path: Vault-relative POSIX path.
        last_modified: Local file mtime in epoch milliseconds.
        wolai_row_id: Page id of the remote row.
        synced: True once the remote row and its blocks were written.
        hash: ``content_hash`` of the file text after the sync.
    """

    file_path: str = Field(alias="filePath")
    last_modified: int = Field(default=0, alias="lastModified")
    wolai_row_id: str = Field(default="", alias="wolaiRowId")
    synced: bool = False
    hash: str = ""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)


class SyncDirection(str, Enum):
    OUTBOUND = "outbound"
    INBOUND = "inbound"


class SyncResult(BaseModel):
    """Outcome of one document/row sync."""

    path: str
    direction: SyncDirection
    success: bool
    skipped: bool = False
    wolai_id: str | None = None
    error: str | None = None

    model_config = {"frozen": True}


class FullSyncResult(BaseModel):
    """Counts of documents pushed and rows pulled by one full sync."""

    outbound_count: int = 0
    inbound_count: int = 0
    valid: bool = True
    results: list[SyncResult] = []

    model_config = {"frozen": True}

    @property
    def errors(self) -> list[SyncResult]:
        return [r for r in self.results if not r.success]


class SyncStats(BaseModel):
    total: int = 0
    synced: int = 0
    pending: int = 0

    model_config = {"frozen": True}

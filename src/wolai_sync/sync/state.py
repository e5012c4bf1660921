"""Sync record persistence layer.

Keeps one ``SyncRecord`` per synced document in memory and persists the
whole map to ``<state_dir>/sync-records.json`` after every mutation.  The
file is a single JSON object keyed by vault-relative path::

    {"notes/a.md": {"filePath": "notes/a.md", "lastModified": 1700000000000,
                    "wolaiRowId": "abc123", "synced": true, "hash": "5e1f0c"}}

Writes go to a temp file first and are moved into place with
``os.replace()``, so an interrupted save leaves the previous snapshot
intact.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from .models import SyncRecord, SyncStats

logger = logging.getLogger(__name__)

RECORDS_FILE = "sync-records.json"


class SyncRecordStore:
    """Load, query, and persist sync records.

    Args:
        state_dir: Directory holding the records file (created on first save).
    """

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = state_dir
        self._records: dict[str, SyncRecord] = {}
        self.load()

    @property
    def path(self) -> Path:
        return self._state_dir / RECORDS_FILE

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Replace the in-memory map with the snapshot on disk.

        A missing file yields an empty map.  An unreadable file is logged
        and also yields an empty map; individual bad entries are skipped.
        """
        self._records = {}
        if not self.path.exists():
            return
        try:
            with open(self.path, encoding="utf-8") as fh:
                raw = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read sync records %s: %s", self.path, e)
            return
        if not isinstance(raw, dict):
            logger.warning("Sync records file %s is not an object", self.path)
            return

        for key, value in raw.items():
            try:
                self._records[key] = SyncRecord.model_validate(value)
            except ValidationError as e:
                logger.warning("Skipping bad sync record %r: %s", key, e)
        logger.debug("Loaded %d sync records", len(self._records))

    def save(self) -> None:
        """Persist the whole map atomically."""
        self._state_dir.mkdir(parents=True, exist_ok=True)
        snapshot = {key: rec.to_json() for key, rec in self._records.items()}

        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._state_dir), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(snapshot, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------

    def get(self, file_path: str) -> SyncRecord | None:
        return self._records.get(file_path)

    def put(self, record: SyncRecord) -> None:
        self._records[record.file_path] = record
        self.save()

    def remove(self, file_path: str) -> bool:
        """Drop *file_path*'s record; returns False if there was none."""
        if self._records.pop(file_path, None) is None:
            return False
        self.save()
        return True

    def rename(self, old_path: str, new_path: str) -> bool:
        record = self._records.pop(old_path, None)
        if record is None:
            return False
        self._records[new_path] = record.model_copy(
            update={"file_path": new_path}
        )
        self.save()
        return True

    def clear(self) -> None:
        self._records = {}
        self.save()

    def all(self) -> list[SyncRecord]:
        return list(self._records.values())

    def stats(self) -> SyncStats:
        total = len(self._records)
        synced = sum(1 for r in self._records.values() if r.synced)
        return SyncStats(total=total, synced=synced, pending=total - synced)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, file_path: object) -> bool:
        return file_path in self._records

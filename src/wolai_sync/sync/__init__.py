"""Bidirectional Markdown vault <-> Wolai database sync.

Modules:

- ``engine``    -- ``SyncEngine``: outbound, inbound, and full sync.
- ``state``     -- ``SyncRecordStore``: persisted per-document fingerprints.
- ``models``    -- ``SyncRecord``, ``SyncResult``, ``FullSyncResult``,
  ``SyncStats``.
- ``triggers``  -- ``SyncTrigger``: debounced file-change events.
- ``reporter``  -- human-readable and JSON result formatting.

Usage example
-------------
::

    from pathlib import Path
    from wolai_sync.config import load_config
    from wolai_sync.core.client import WolaiClient
    from wolai_sync.sync import SyncEngine, format_full_sync

    config = load_config()
    engine = SyncEngine(WolaiClient(config), config, Path(config.vault_path))

    result = await engine.full_sync()
    print(format_full_sync(result))
"""

from .engine import SyncEngine
from .models import (
    FullSyncResult,
    SyncDirection,
    SyncRecord,
    SyncResult,
    SyncStats,
)
from .reporter import format_full_sync, format_stats, full_sync_to_json
from .state import SyncRecordStore
from .triggers import SyncTrigger

__all__ = [
    "FullSyncResult",
    "SyncDirection",
    "SyncEngine",
    "SyncRecord",
    "SyncRecordStore",
    "SyncResult",
    "SyncStats",
    "SyncTrigger",
    "format_full_sync",
    "format_stats",
    "full_sync_to_json",
]

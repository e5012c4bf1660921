"""Debounced change-event source feeding the sync engine.

File watchers tend to report a burst of modifications for one save.
``SyncTrigger`` collects changed paths and waits until no new change has
arrived for ``debounce`` seconds, then hands each collected path to
``SyncEngine.sync_one`` exactly once.  Creations sync immediately,
deletions drop the path's sync record, and a rename is a deletion of the
old path followed by a creation of the new one.
"""

from __future__ import annotations

import asyncio
import logging

from .engine import SyncEngine

logger = logging.getLogger(__name__)


class SyncTrigger:
    def __init__(self, engine: SyncEngine, debounce: float | None = None) -> None:
        self.engine = engine
        # Defaults to the configured quiet period
        self.debounce = (
            engine.config.debounce_seconds if debounce is None else debounce
        )
        self._pending: dict[str, None] = {}
        self._timer: asyncio.TimerHandle | None = None
        self._flush_task: asyncio.Task | None = None

    def _accepts(self, path: str) -> bool:
        return path.endswith(".md") and self.engine.in_sync_folder(path)

    @property
    def pending(self) -> list[str]:
        return list(self._pending)

    def changed(self, path: str) -> None:
        """Queue *path* and restart the quiet-period timer."""
        if not self._accepts(path):
            return
        self._pending[path] = None
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce, self._fire)

    def _fire(self) -> None:
        self._timer = None
        self._flush_task = asyncio.get_running_loop().create_task(self.flush())

    async def flush(self) -> int:
        """Sync every queued path now; returns how many succeeded."""
        paths, self._pending = list(self._pending), {}
        succeeded = 0
        for path in paths:
            if await self.engine.sync_one(path):
                succeeded += 1
        if paths:
            logger.debug("Debounced sync of %d paths, %d ok", len(paths), succeeded)
        return succeeded

    async def created(self, path: str) -> bool:
        if not self._accepts(path):
            return False
        return await self.engine.sync_one(path)

    async def deleted(self, path: str) -> bool:
        if not self._accepts(path):
            return False
        self._pending.pop(path, None)
        return await self.engine.remove_record(path)

    async def renamed(self, old_path: str, new_path: str) -> bool:
        await self.deleted(old_path)
        return await self.created(new_path)

    def close(self) -> None:
        """Cancel the timer and forget queued paths."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending.clear()

    async def wait_idle(self) -> None:
        """Wait for a flush started by the timer to finish."""
        if self._flush_task is not None:
            await self._flush_task
            self._flush_task = None

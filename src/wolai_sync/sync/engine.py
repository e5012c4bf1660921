"""Reconciliation engine for Markdown vault <-> Wolai database sync.

Outbound (local -> remote)
    A document whose front-matter status is ``Pending`` or ``Modified`` is
    converted to blocks, inserted as a new database row, and its blocks
    are appended under that row in batches.  On success the document is
    rewritten as ``Synced`` with the new ``wolai_id`` and a ``SyncRecord``
    is stored.  A ``Synced`` document whose text no longer matches its
    record's hash is first moved to ``Modified``.

Inbound (remote -> local)
    Rows whose ``同步状态`` column is ``WaitingForInbound`` are rendered to
    Markdown and written into the sync folder under a name derived from
    the row's title columns.  Paths recorded on the row are never used.

Concurrency
    All work runs on one event loop.  Blocking client and file calls go
    through ``run_sync``.  ``_in_flight`` holds the paths with an outbound
    sync in progress; its check-and-add happens before the first await,
    so a second concurrent call for the same path returns immediately.

Every public coroutine returns a result value.  Failures are logged,
reported through ``notify``, and never raised.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath
from typing import Any, Callable, TypeVar

from wolai_sync.config import Config
from wolai_sync.converters.blocks_to_markdown import blocks_to_markdown
from wolai_sync.converters.common import Block, content_hash
from wolai_sync.converters.frontmatter import (
    SyncStatus,
    is_synced,
    needs_sync,
    split_front_matter,
    stringify,
    to_plain_value,
    update_sync_status,
    utc_now_iso,
)
from wolai_sync.converters.markdown_to_blocks import parse_document
from wolai_sync.core.async_utils import retry_with_backoff, run_sync
from wolai_sync.core.client import ApiCallStats, RemoteRow, WolaiClient
from wolai_sync.core.errors import WolaiAPIError
from wolai_sync.file_handler import (
    ensure_parent,
    file_mtime_ms,
    is_in_folder,
    list_markdown_files,
    read_text,
    resolve_in_root,
    sanitize_file_name,
    write_file,
)
from wolai_sync.sync.models import (
    FullSyncResult,
    SyncDirection,
    SyncRecord,
    SyncResult,
    SyncStats,
)
from wolai_sync.sync.state import SyncRecordStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Remote database columns written on outbound sync
COL_TITLE = "标题"
COL_FILE_NAME = "文件名"
COL_FILE_PATH = "文件路径"
COL_SYNC_TIME = "同步时间"
COL_SYNC_STATUS = "同步状态"
COL_NAME = "名称"

DERIVED_COLUMNS = frozenset(
    {COL_TITLE, COL_FILE_NAME, COL_FILE_PATH, COL_SYNC_TIME, COL_SYNC_STATUS}
)

INBOUND_TRIGGER = SyncStatus.WAITING_FOR_INBOUND.value


def _log_notify(message: str) -> None:
    logger.info("%s", message)


class SyncEngine:
    """Reconcile one vault folder with one Wolai database.

    Args:
        client: Wolai client (or any object with the same methods).
        config: Loaded configuration.
        vault_root: Vault directory; defaults to ``config.vault_path``.
        store: Record store; defaults to one under ``config.state_dir``.
        notify: Receives one human-readable line per user-visible outcome.
        outbound_delay: Seconds between documents in a full sync.
        child_fetch_delay: Seconds before each child-block fetch.
    """

    def __init__(
        self,
        client: WolaiClient,
        config: Config,
        vault_root: Path | None = None,
        store: SyncRecordStore | None = None,
        notify: Callable[[str], None] | None = None,
        outbound_delay: float = 0.5,
        child_fetch_delay: float = 0.2,
    ) -> None:
        self.client = client
        self.config = config
        self.vault_root = Path(vault_root or config.vault_path).expanduser()
        self.store = store or SyncRecordStore(self.vault_root / config.state_dir)
        self.notify = notify or _log_notify
        self.outbound_delay = outbound_delay
        self.child_fetch_delay = child_fetch_delay
        self.last_sync_time: str | None = None
        self._in_flight: set[str] = set()

    @property
    def sync_root(self) -> Path:
        if self.config.sync_folder:
            return self.vault_root / self.config.sync_folder
        return self.vault_root

    def is_syncing(self, path: str) -> bool:
        return path in self._in_flight

    def in_sync_folder(self, path: str) -> bool:
        return is_in_folder(path, self.config.sync_folder)

    # ------------------------------------------------------------------
    # Remote call helpers
    # ------------------------------------------------------------------

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        return await run_sync(func, *args)

    async def _read_call(self, func: Callable[..., T], *args: Any) -> T:
        """Run a read-only remote call, retrying when configured to."""
        if self.config.max_retries <= 0:
            return await run_sync(func, *args)
        return await retry_with_backoff(
            lambda: run_sync(func, *args),
            max_retries=self.config.max_retries,
            retry_on=(WolaiAPIError,),
        )

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def sync_one(self, path: str) -> bool:
        """Sync one document if it needs it, detecting local edits first."""
        if path in self._in_flight:
            logger.debug("Outbound sync of %s already running", path)
            return True
        try:
            await self._detect_modification(path)
        except (OSError, ValueError) as e:
            logger.error("Cannot read %s: %s", path, e)
            self.notify(f"Sync failed for {path}: {e}")
            return False
        return await self.sync_outbound(path)

    async def sync_outbound(self, path: str) -> bool:
        """Push *path* to Wolai unless it is already being pushed or is up to date."""
        return (await self._guarded_push(path)).success

    async def _guarded_push(self, path: str) -> SyncResult:
        if path in self._in_flight:
            logger.debug("Outbound sync of %s already running", path)
            return SyncResult(
                path=path,
                direction=SyncDirection.OUTBOUND,
                success=True,
                skipped=True,
            )
        self._in_flight.add(path)
        try:
            return await self._push(path, force=False)
        finally:
            self._in_flight.discard(path)

    async def force_sync(self, path: str) -> bool:
        """Push *path* regardless of its status or a sync already running."""
        owned = path not in self._in_flight
        self._in_flight.add(path)
        try:
            result = await self._push(path, force=True)
        finally:
            if owned:
                self._in_flight.discard(path)
        return result.success

    async def batch_sync(self, paths: list[str]) -> int:
        """Sync each path in turn; returns how many succeeded."""
        succeeded = 0
        for index, path in enumerate(paths):
            if index:
                await asyncio.sleep(self.outbound_delay)
            if await self.sync_one(path):
                succeeded += 1
        return succeeded

    async def _detect_modification(self, path: str) -> bool:
        """Move a ``Synced`` document to ``Modified`` if its text changed.

        Returns whether the document now needs an outbound sync.
        """
        file_path = resolve_in_root(self.vault_root, path)
        text = await run_sync(read_text, file_path)
        front_matter, _ = split_front_matter(text)
        if not is_synced(front_matter):
            return needs_sync(front_matter)

        record = self.store.get(path)
        if record is None or record.hash == content_hash(text):
            return False

        logger.info("%s changed since last sync, marking Modified", path)
        updated = update_sync_status(text, SyncStatus.MODIFIED)
        await run_sync(write_file, file_path, updated)
        return True

    def _build_row(
        self, front_matter: dict[str, Any], title: str, path: str
    ) -> dict[str, Any]:
        row = {str(k): to_plain_value(v) for k, v in front_matter.items()}
        row.update(
            {
                COL_TITLE: title,
                COL_FILE_NAME: PurePosixPath(path).stem,
                COL_FILE_PATH: path,
                COL_SYNC_TIME: utc_now_iso(),
                COL_SYNC_STATUS: SyncStatus.SYNCED.value,
            }
        )
        return row

    async def _push(self, path: str, force: bool) -> SyncResult:
        try:
            file_path = resolve_in_root(self.vault_root, path)
            text = await run_sync(read_text, file_path)
            doc = parse_document(text, file_path.name)

            if not force and not needs_sync(doc.front_matter):
                logger.debug("%s does not need sync", path)
                return SyncResult(
                    path=path,
                    direction=SyncDirection.OUTBOUND,
                    success=True,
                    skipped=True,
                )

            if not self.config.database_id:
                raise ValueError("no Wolai database id configured")

            row = self._build_row(doc.front_matter, doc.title, path)
            page_id = await self._call(
                self.client.insert_row_and_get_page_id,
                self.config.database_id,
                row,
            )
            logger.info("Created row %s for %s", page_id, path)

            if doc.blocks:
                await self._call(self.client.create_blocks, page_id, doc.blocks)
                logger.info("Created %d blocks for %s", len(doc.blocks), path)

            updated = update_sync_status(text, SyncStatus.SYNCED, page_id)
            await run_sync(write_file, file_path, updated)
            mtime = await run_sync(file_mtime_ms, file_path)
            record = SyncRecord(
                file_path=path,
                last_modified=mtime,
                wolai_row_id=page_id,
                synced=True,
                hash=content_hash(updated),
            )
            await run_sync(self.store.put, record)
        except WolaiAPIError as e:
            logger.error("Outbound sync of %s failed: %s", path, e)
            self.notify(f"Sync to Wolai failed for {path}: {e}")
            return self._failed(path, SyncDirection.OUTBOUND, e)
        except (OSError, ValueError) as e:
            logger.error("Outbound sync of %s failed: %s", path, e)
            self.notify(f"Sync failed for {path}: {e}")
            return self._failed(path, SyncDirection.OUTBOUND, e)
        except Exception as e:
            logger.exception("Unexpected error syncing %s", path)
            self.notify(f"Sync failed for {path}: {e}")
            return self._failed(path, SyncDirection.OUTBOUND, e)

        self.notify(f"Synced {path} to Wolai")
        return SyncResult(
            path=path,
            direction=SyncDirection.OUTBOUND,
            success=True,
            wolai_id=page_id,
        )

    @staticmethod
    def _failed(path: str, direction: SyncDirection, error: Exception) -> SyncResult:
        return SyncResult(
            path=path, direction=direction, success=False, error=str(error)
        )

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def fetch_page_blocks(self, page_id: str) -> list[Block]:
        """Fetch a page's blocks with every child level flattened in."""
        top = await self._read_call(self.client.get_block_children, page_id)
        return await self._expand(top)

    async def _expand(self, blocks: list[Block]) -> list[Block]:
        expanded: list[Block] = []
        for block in blocks:
            expanded.append(block)
            if not block.has_children or not block.id:
                continue
            await asyncio.sleep(self.child_fetch_delay)
            try:
                children = await self._read_call(
                    self.client.get_block_children, block.id
                )
            except WolaiAPIError as e:
                logger.warning(
                    "Skipping children of block %s: %s", block.id, e
                )
                continue
            tagged = [
                child.model_copy(
                    update={"depth": block.depth + 1, "is_child_block": True}
                )
                for child in children
            ]
            expanded.extend(await self._expand(tagged))
        return expanded

    def _inbound_path(self, row: RemoteRow) -> str:
        """Vault-relative path a row materialises to, always in the sync folder."""
        name = (
            row.value(COL_NAME)
            or row.value(COL_TITLE)
            or row.value(COL_FILE_NAME)
            or f"Page_{row.page_id}"
        )
        file_name = f"{sanitize_file_name(str(name))}.md"
        folder = self.config.sync_folder
        relative = f"{folder}/{file_name}" if folder else file_name
        # Raises if the result would still escape the vault
        resolve_in_root(self.sync_root, file_name)
        return relative

    async def _pull(self, row: RemoteRow) -> SyncResult:
        path = row.page_id
        try:
            path = self._inbound_path(row)
            page_name = PurePosixPath(path).stem

            front_matter: dict[str, Any] = {
                "sync_status": SyncStatus.SYNCED.value,
                "wolai_id": row.page_id,
                "last_sync": utc_now_iso(),
            }
            for column in row.data:
                if column not in DERIVED_COLUMNS:
                    front_matter[column] = to_plain_value(row.value(column))

            blocks = await self.fetch_page_blocks(row.page_id)
            if blocks:
                body = blocks_to_markdown(blocks, page_name)
            else:
                body = (
                    f"# {page_name}\n\n"
                    f"*Synced from Wolai, page id: {row.page_id}*"
                )
            text = stringify(front_matter, body + "\n")

            file_path = resolve_in_root(self.vault_root, path)
            # A missing folder is not fatal; the write below reports the real error
            await run_sync(ensure_parent, file_path)
            await run_sync(write_file, file_path, text)
            mtime = await run_sync(file_mtime_ms, file_path)
            await run_sync(
                self.store.put,
                SyncRecord(
                    file_path=path,
                    last_modified=mtime,
                    wolai_row_id=row.page_id,
                    synced=True,
                    hash=content_hash(text),
                ),
            )
        except WolaiAPIError as e:
            logger.error("Inbound sync of page %s failed: %s", row.page_id, e)
            return self._failed(path, SyncDirection.INBOUND, e)
        except (OSError, ValueError) as e:
            logger.error("Could not write %s from page %s: %s", path, row.page_id, e)
            return self._failed(path, SyncDirection.INBOUND, e)
        except Exception as e:
            logger.exception("Unexpected error pulling page %s", row.page_id)
            return self._failed(path, SyncDirection.INBOUND, e)

        logger.info("Wrote %s from Wolai page %s", path, row.page_id)
        return SyncResult(
            path=path,
            direction=SyncDirection.INBOUND,
            success=True,
            wolai_id=row.page_id,
        )

    async def _sync_inbound(self) -> list[SyncResult]:
        rows = await self._read_call(
            self.client.list_all_rows, self.config.database_id
        )
        waiting = [
            row for row in rows if row.value(COL_SYNC_STATUS) == INBOUND_TRIGGER
        ]
        logger.info("%d rows waiting for inbound sync", len(waiting))

        results = []
        for row in waiting:
            results.append(await self._pull(row))
        return results

    async def sync_inbound(self) -> int:
        """Materialise every waiting remote row; returns how many were written."""
        try:
            results = await self._sync_inbound()
        except WolaiAPIError as e:
            logger.error("Inbound sync failed: %s", e)
            self.notify(f"Sync from Wolai failed: {e}")
            return 0
        except Exception as e:
            logger.exception("Unexpected error during inbound sync")
            self.notify(f"Sync from Wolai failed: {e}")
            return 0
        return sum(1 for r in results if r.success)

    # ------------------------------------------------------------------
    # Full sync
    # ------------------------------------------------------------------

    async def validate_preconditions(self) -> bool:
        """True when configuration is complete and Wolai is reachable."""
        if not self.config.database_id:
            logger.warning("Sync refused: no database id configured")
            return False
        if not self.sync_root.is_dir():
            logger.warning("Sync refused: %s is not a folder", self.sync_root)
            return False
        try:
            return bool(await self._call(self.client.validate_connection))
        except Exception as e:
            logger.error("Connection check failed: %s", e)
            return False

    async def full_sync(self) -> FullSyncResult:
        """Push every document needing sync, then pull waiting rows."""
        if not await self.validate_preconditions():
            self.notify("Sync skipped: check the Wolai configuration and connection")
            return FullSyncResult(valid=False)

        results: list[SyncResult] = []
        try:
            paths = await run_sync(
                list_markdown_files, self.vault_root, self.config.sync_folder
            )
            pending: list[str] = []
            for path in paths:
                try:
                    if await self._detect_modification(path):
                        pending.append(path)
                except (OSError, ValueError) as e:
                    logger.warning("Skipping unreadable %s: %s", path, e)
            logger.info("%d of %d documents need outbound sync", len(pending), len(paths))

            for index, path in enumerate(pending):
                if index:
                    await asyncio.sleep(self.outbound_delay)
                results.append(await self._guarded_push(path))

            results.extend(await self._sync_inbound())
        except WolaiAPIError as e:
            logger.error("Full sync aborted: %s", e)
            self.notify(f"Sync from Wolai failed: {e}")
        except OSError as e:
            logger.error("Full sync aborted: %s", e)
            self.notify(f"Sync failed: {e}")
        except Exception as e:
            logger.exception("Unexpected error during full sync")
            self.notify(f"Sync failed: {e}")

        outbound = sum(
            1
            for r in results
            if r.direction is SyncDirection.OUTBOUND and r.success and not r.skipped
        )
        inbound = sum(
            1 for r in results if r.direction is SyncDirection.INBOUND and r.success
        )
        self.notify(f"Sync complete: {outbound} pushed, {inbound} pulled")
        return FullSyncResult(
            outbound_count=outbound, inbound_count=inbound, results=results
        )

    async def scheduled_sync(self) -> FullSyncResult:
        result = await self.full_sync()
        if result.valid:
            self.last_sync_time = utc_now_iso()
        return result

    # ------------------------------------------------------------------
    # Records and status
    # ------------------------------------------------------------------

    async def remove_record(self, path: str) -> bool:
        try:
            return await run_sync(self.store.remove, path)
        except OSError as e:
            logger.error("Could not remove record for %s: %s", path, e)
            return False

    async def rename_record(self, old_path: str, new_path: str) -> bool:
        try:
            return await run_sync(self.store.rename, old_path, new_path)
        except OSError as e:
            logger.error("Could not move record %s -> %s: %s", old_path, new_path, e)
            return False

    async def clear_records(self) -> bool:
        try:
            await run_sync(self.store.clear)
        except OSError as e:
            logger.error("Could not clear sync records: %s", e)
            return False
        self.notify("All sync records cleared")
        return True

    def get_record(self, path: str) -> SyncRecord | None:
        return self.store.get(path)

    def get_stats(self) -> SyncStats:
        return self.store.stats()

    async def set_file_status(self, path: str, status: SyncStatus) -> bool:
        """Overwrite a document's ``sync_status`` (keeps its ``wolai_id``)."""
        try:
            file_path = resolve_in_root(self.vault_root, path)
            text = await run_sync(read_text, file_path)
            await run_sync(write_file, file_path, update_sync_status(text, status))
        except (OSError, ValueError) as e:
            logger.error("Could not set status of %s: %s", path, e)
            self.notify(f"Could not update {path}: {e}")
            return False
        return True

    def get_api_call_stats(self) -> ApiCallStats:
        return self.client.get_api_call_stats()

    def reset_api_call_stats(self) -> None:
        self.client.reset_api_call_stats()

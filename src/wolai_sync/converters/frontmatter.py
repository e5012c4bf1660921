"""YAML front-matter handling for synced Markdown documents.

A document may open with a ``---`` delimited YAML mapping.  Three keys in
that mapping belong to the sync engine:

* ``sync_status`` -- one of ``SyncStatus``
* ``wolai_id`` -- id of the remote row the document was last pushed to
* ``last_sync`` -- ISO-8601 timestamp of the last successful sync

Everything else is user metadata and is copied into the remote row on
outbound sync.  Malformed front-matter never raises: the document is
treated as having an empty mapping and the full text as its body.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

import yaml

logger = logging.getLogger(__name__)

FRONT_MATTER_PATTERN = re.compile(
    r"\A---[ \t]*\r?\n(?:(.*?)\r?\n)?---[ \t]*(?:\r?\n|\Z)", re.DOTALL
)

SYNC_KEYS = ("sync_status", "wolai_id", "last_sync")


class SyncStatus(str, Enum):
    """Per-document sync state held in front-matter."""

    PENDING = "Pending"
    MODIFIED = "Modified"
    SYNCED = "Synced"
    WAITING_FOR_INBOUND = "WaitingForInbound"


@dataclass
class SyncInfo:
    """The sync-owned slice of a document's front-matter."""

    sync_status: SyncStatus = SyncStatus.PENDING
    wolai_id: str | None = None
    last_sync: str | None = None


def utc_now_iso() -> str:
    """Current UTC time in ISO-8601 form."""
    return datetime.now(timezone.utc).isoformat()


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Split *text* into ``(front_matter, body)``.

    Returns an empty mapping and the unchanged text when there is no
    front-matter block or it cannot be parsed as a YAML mapping.
    """
    match = FRONT_MATTER_PATTERN.match(text)
    if not match:
        return {}, text

    raw = match.group(1) or ""
    body = text[match.end():]
    try:
        data = yaml.safe_load(raw) if raw.strip() else {}
    except yaml.YAMLError as e:
        logger.warning("Ignoring malformed front-matter: %s", e)
        return {}, text

    if data is None:
        data = {}
    if not isinstance(data, dict):
        logger.warning(
            "Ignoring front-matter that is not a mapping (got %s)",
            type(data).__name__,
        )
        return {}, text
    return {str(k): v for k, v in data.items()}, body


def to_plain_value(value: Any) -> Any:
    """Coerce a YAML-loaded value into a JSON and YAML safe value."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_plain_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain_value(v) for v in value]
    return value


def stringify(front_matter: dict[str, Any], body: str) -> str:
    """Serialise *front_matter* and *body* back into document text."""
    if not front_matter:
        return body
    dumped = yaml.safe_dump(
        to_plain_value(front_matter),
        allow_unicode=True,
        sort_keys=False,
        default_flow_style=False,
    )
    if body and not body.endswith("\n"):
        body += "\n"
    return f"---\n{dumped}---\n{body}"


def get_sync_info(front_matter: dict[str, Any]) -> SyncInfo:
    """Read the sync keys, treating missing or unknown status as Pending."""
    raw_status = front_matter.get("sync_status")
    try:
        status = SyncStatus(raw_status)
    except ValueError:
        if raw_status is not None:
            logger.debug("Unknown sync_status %r, treating as Pending", raw_status)
        status = SyncStatus.PENDING

    wolai_id = front_matter.get("wolai_id")
    last_sync = to_plain_value(front_matter.get("last_sync"))
    return SyncInfo(
        sync_status=status,
        wolai_id=str(wolai_id) if wolai_id else None,
        last_sync=str(last_sync) if last_sync else None,
    )


def needs_sync(front_matter: dict[str, Any]) -> bool:
    return get_sync_info(front_matter).sync_status in (
        SyncStatus.PENDING,
        SyncStatus.MODIFIED,
    )


def is_synced(front_matter: dict[str, Any]) -> bool:
    return get_sync_info(front_matter).sync_status is SyncStatus.SYNCED


def update_sync_status(
    text: str, status: SyncStatus, wolai_id: str | None = None
) -> str:
    """Rewrite the sync keys of *text*'s front-matter.

    ``last_sync`` is stamped with the current time; ``wolai_id`` is only
    written when given.  On any failure the text is returned unchanged.
    """
    try:
        front_matter, body = split_front_matter(text)
        front_matter["sync_status"] = SyncStatus(status).value
        front_matter["last_sync"] = utc_now_iso()
        if wolai_id:
            front_matter["wolai_id"] = wolai_id
        return stringify(front_matter, body)
    except (ValueError, yaml.YAMLError) as e:
        logger.error("Failed to update sync status: %s", e)
        return text

"""Blocking HTTP client for the Wolai open API.

All methods are synchronous and raise ``WolaiAPIError`` subclasses on
failure; the sync engine calls them through ``run_sync``.  Token and call
statistics are per-instance state.
"""

import logging
import re
import threading
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

import requests
from pydantic import BaseModel, Field, ValidationError

from ..config import Config
from ..converters.common import Block
from .errors import WolaiAPIError, WolaiAuthError, WolaiResponseError

logger = logging.getLogger(__name__)

BASE_URL = "https://openapi.wolai.com/v1"
BLOCK_BATCH_SIZE = 20
DATABASE_PAGE_SIZE = 200

_PAGE_ID_PATTERN = re.compile(r"wolai\.com/([a-zA-Z0-9]+)")
_BARE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")


def _midnight_ms() -> int:
    """Epoch milliseconds of today's local midnight."""
    today = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
    return int(today.timestamp() * 1000)


@dataclass
class ApiCallStats:
    """Successful API call counters."""

    total: int = 0
    today: int = 0
    last_reset: int = field(default_factory=_midnight_ms)

    def roll_over(self) -> None:
        """Zero ``today`` when local midnight has passed since the last reset."""
        midnight = _midnight_ms()
        if midnight > self.last_reset:
            self.today = 0
            self.last_reset = midnight

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class RemoteRow(BaseModel):
    """One row of a Wolai database."""

    page_id: str
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True, "extra": "ignore"}

    def value(self, column: str) -> Any:
        """Return a column's value, unwrapping ``{"value": ...}`` cells."""
        cell = self.data.get(column)
        if isinstance(cell, dict) and "value" in cell:
            return cell["value"]
        return cell


def extract_page_id(locator: str) -> str | None:
    """Pull the page id out of a ``https://www.wolai.com/<id>`` locator."""
    match = _PAGE_ID_PATTERN.search(locator)
    if match:
        return match.group(1)
    if _BARE_ID_PATTERN.match(locator):
        return locator
    return None


class WolaiClient:
    def __init__(self, config: Config, base_url: str = BASE_URL):
        self.config = config
        self.base_url = base_url.rstrip("/")
        self._thread_local = threading.local()
        self._token: str | None = None
        self._token_expire_time: int = 0
        self._token_lock = threading.Lock()
        self._stats = ApiCallStats()
        self._stats_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            session = requests.Session()
            session.headers["Content-Type"] = "application/json"
            self._thread_local.session = session
        return self._thread_local.session

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        params: dict[str, Any] | None = None,
        authenticated: bool = True,
    ) -> Any:
        """Perform one call and return the ``data`` member of the response."""
        headers = {}
        if authenticated:
            headers["Authorization"] = self.get_valid_token()

        session = self._get_session()
        url = f"{self.base_url}{path}"
        try:
            if method == "GET":
                response = session.get(
                    url, params=params, headers=headers, timeout=(10, 60)
                )
            else:
                response = session.post(
                    url,
                    json=json_body,
                    params=params,
                    headers=headers,
                    timeout=(10, 60),
                )
        except requests.RequestException as e:
            raise WolaiAPIError(f"{method} {path} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.ok:
            message = (
                body.get("message")
                if isinstance(body, dict) and body.get("message")
                else (response.text or "")[:200]
            )
            raise WolaiResponseError(
                f"{method} {path} returned HTTP {response.status_code}: {message}",
                status_code=response.status_code,
            )
        if not isinstance(body, dict) or body.get("data") is None:
            message = body.get("message") if isinstance(body, dict) else None
            raise WolaiResponseError(
                f"{method} {path} returned no data: {message or 'malformed body'}",
                status_code=response.status_code,
            )

        self._count_call()
        return body["data"]

    def _count_call(self) -> None:
        with self._stats_lock:
            self._stats.roll_over()
            self._stats.total += 1
            self._stats.today += 1
            total, today = self._stats.total, self._stats.today
        logger.debug("API call count: total=%d today=%d", total, today)

    # ------------------------------------------------------------------
    # Token
    # ------------------------------------------------------------------

    def create_token(self) -> str:
        """Issue a fresh app token and cache it with its expiry."""
        if not self.config.app_id or not self.config.app_secret:
            raise WolaiAuthError("app_id and app_secret are required")
        try:
            data = self._request(
                "POST",
                "/token",
                json_body={
                    "appId": self.config.app_id,
                    "appSecret": self.config.app_secret,
                },
                authenticated=False,
            )
        except WolaiAPIError as e:
            raise WolaiAuthError(
                f"Failed to obtain Wolai token: {e}", status_code=e.status_code
            ) from e

        token = data.get("app_token") if isinstance(data, dict) else None
        if not token:
            raise WolaiAuthError("Token response did not contain app_token")
        self._token = token
        self._token_expire_time = int(data.get("expire_time", -1))
        logger.info("Wolai token created")
        return token

    def get_valid_token(self) -> str:
        """Return the cached token, issuing a new one if missing or expired."""
        with self._token_lock:
            if self._token and (
                self._token_expire_time == -1
                or time.time() * 1000 < self._token_expire_time
            ):
                return self._token
            return self.create_token()

    def validate_connection(self) -> bool:
        try:
            self.get_valid_token()
        except WolaiAPIError as e:
            logger.warning("Wolai connection check failed: %s", e)
            return False
        return True

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    def insert_row(self, database_id: str, row: dict[str, Any]) -> str:
        """Insert one row and return the locator of the created page."""
        data = self._request(
            "POST", f"/databases/{database_id}/rows", json_body={"rows": [row]}
        )
        if not isinstance(data, list) or not data:
            raise WolaiResponseError("Row insert returned no locator")
        logger.info("Inserted row into database %s: %s", database_id, data[0])
        return str(data[0])

    def insert_row_and_get_page_id(
        self, database_id: str, row: dict[str, Any]
    ) -> str:
        locator = self.insert_row(database_id, row)
        page_id = extract_page_id(locator)
        if not page_id:
            raise WolaiResponseError(
                f"Could not extract page id from locator {locator!r}"
            )
        return page_id

    def get_database_content(
        self,
        database_id: str,
        page_size: int = DATABASE_PAGE_SIZE,
        start_cursor: str | None = None,
    ) -> dict[str, Any]:
        """Fetch one page of rows: ``{column_order, rows, has_more?, next_cursor?}``."""
        params: dict[str, Any] = {"page_size": page_size}
        if start_cursor:
            params["start_cursor"] = start_cursor
        data = self._request("GET", f"/databases/{database_id}", params=params)
        if not isinstance(data, dict):
            raise WolaiResponseError("Database content has unexpected shape")
        return data

    def list_all_rows(self, database_id: str) -> list[RemoteRow]:
        """Fetch every row, following the cursor when the service pages."""
        rows: list[RemoteRow] = []
        cursor: str | None = None
        while True:
            data = self.get_database_content(database_id, start_cursor=cursor)
            for raw in data.get("rows") or []:
                if isinstance(raw, dict) and raw.get("page_id"):
                    try:
                        rows.append(RemoteRow.model_validate(raw))
                    except ValidationError as e:
                        raise WolaiResponseError(
                            f"Row {raw.get('page_id')} has unexpected shape: {e}"
                        ) from e
            cursor = data.get("next_cursor")
            if not data.get("has_more") or not cursor:
                break
        logger.info("Retrieved %d rows from database %s", len(rows), database_id)
        return rows

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def create_blocks(self, parent_id: str, blocks: list[Block]) -> int:
        """Append *blocks* under *parent_id* in order, 20 per call.

        Returns the number of batches sent.  Raises on the first failed
        batch; earlier batches stay created.
        """
        payloads = [block.to_payload() for block in blocks]
        batches = 0
        for start in range(0, len(payloads), BLOCK_BATCH_SIZE):
            batch = payloads[start:start + BLOCK_BATCH_SIZE]
            batches += 1
            try:
                self._request(
                    "POST",
                    "/blocks",
                    json_body={"parent_id": parent_id, "blocks": batch},
                )
            except WolaiAPIError as e:
                raise WolaiResponseError(
                    f"Creating block batch {batches} under {parent_id} failed: {e}",
                    status_code=e.status_code,
                ) from e
            logger.debug(
                "Created block batch %d (%d blocks) under %s",
                batches,
                len(batch),
                parent_id,
            )
        return batches

    def get_block_children(self, block_id: str) -> list[Block]:
        """Fetch the direct children of a block or page (one level)."""
        data = self._request("GET", f"/blocks/{block_id}/children")
        if not isinstance(data, list):
            raise WolaiResponseError("Block children have unexpected shape")
        try:
            return [Block.model_validate(raw) for raw in data if isinstance(raw, dict)]
        except ValidationError as e:
            raise WolaiResponseError(
                f"Children of block {block_id} have unexpected shape: {e}"
            ) from e

    # ------------------------------------------------------------------
    # Call accounting
    # ------------------------------------------------------------------

    def get_api_call_stats(self) -> ApiCallStats:
        with self._stats_lock:
            self._stats.roll_over()
            return ApiCallStats(**asdict(self._stats))

    def reset_api_call_stats(self) -> None:
        with self._stats_lock:
            self._stats = ApiCallStats()
        logger.info("API call stats reset")

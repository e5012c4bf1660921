"""Wolai API client and async helpers."""

from .async_utils import retry_with_backoff, run_sync
from .client import ApiCallStats, RemoteRow, WolaiClient
from .errors import WolaiAPIError, WolaiAuthError, WolaiResponseError

__all__ = [
    "ApiCallStats",
    "RemoteRow",
    "WolaiAPIError",
    "WolaiAuthError",
    "WolaiClient",
    "WolaiResponseError",
    "retry_with_backoff",
    "run_sync",
]

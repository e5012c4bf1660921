"""Async utilities for bridging blocking HTTP calls into the sync engine."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Used for every ``requests`` call the Wolai client makes and for file
    I/O in the sync engine.

    Example:
        rows = await run_sync(client.list_all_rows, database_id)
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> T:
    """Await *operation* until it succeeds, doubling the delay between tries.

    The operation runs at most ``max_retries + 1`` times, sleeping
    ``base_delay * 2**n`` seconds after the n-th failure.  The last error
    is re-raised once attempts are exhausted.

    Args:
        operation: Zero-argument coroutine factory.
        max_retries: Retries after the first attempt.
        base_delay: Delay before the first retry, in seconds.
        retry_on: Exception types that trigger a retry; anything else
            propagates immediately.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except retry_on as e:
            if attempt >= max_retries:
                logger.error(
                    "Giving up after %d attempts: %s", attempt + 1, e
                )
                raise
            delay = base_delay * (2**attempt)
            attempt += 1
            logger.info(
                "Attempt %d failed (%s), retrying in %.1fs",
                attempt,
                e,
                delay,
            )
            await asyncio.sleep(delay)

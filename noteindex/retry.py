"""Bounded exponential-backoff retry for transient service errors."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from noteindex.errors import NoteIndexError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_transient(
    coro_func: Callable[..., Awaitable[T]],
    *args: object,
    retries: int,
    backoff_base_s: float,
    what: str = "call",
    **kwargs: object,
) -> T:
    """Execute coroutine with retries for retryable NoteIndexErrors.

    Delay before attempt k+1 is backoff_base_s * 2**(k-1). Permanent errors and
    anything that is not a NoteIndexError propagate on the first attempt.
    """
    attempts = max(1, retries)
    for attempt in range(1, attempts + 1):
        try:
            return await coro_func(*args, **kwargs)
        except NoteIndexError as e:
            if not e.retryable or attempt >= attempts:
                raise
            delay = backoff_base_s * (2 ** (attempt - 1))
            logger.warning(
                "%s failed (attempt %s/%s), retrying in %.2fs: %s",
                what, attempt, attempts, delay, e,
            )
            await asyncio.sleep(delay)
    raise AssertionError("unreachable")

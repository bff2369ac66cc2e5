"""Bounded exponential-backoff retry for async provider calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay_ms: int = 1000,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> T:
    """Await *operation* until it succeeds or *max_attempts* is reached.

    After failed attempt ``n`` (counting from 1) the caller waits
    ``base_delay_ms * 2 ** (n - 1)`` milliseconds.  Every exception type is
    retried; the last one is re-raised once the attempts are exhausted.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        max_attempts: Total number of attempts (at least one is made).
        base_delay_ms: Delay before the second attempt.
        sleep: Awaitable sleep taking seconds; defaults to ``asyncio.sleep``.

    Returns:
        Whatever *operation* returns on its first successful attempt.
    """
    attempts = max(1, max_attempts)
    sleep = sleep or asyncio.sleep

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            if attempt >= attempts:
                raise
            delay_ms = base_delay_ms * 2 ** (attempt - 1)
            logger.warning(
                "Attempt %d/%d failed (%s); retrying in %d ms",
                attempt,
                attempts,
                exc,
                delay_ms,
            )
            await sleep(delay_ms / 1000)

    raise AssertionError("unreachable")  # pragma: no cover

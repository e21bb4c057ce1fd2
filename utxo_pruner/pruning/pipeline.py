"""
Sequential consumer over a lazy candidate stream.

Exactly one candidate is in flight: the next record is only requested after
the previous closure + cascade has finished. Cancellation is polled before
each candidate, never in the middle of a cascade.
"""

from __future__ import annotations

import logging
from contextlib import aclosing
from typing import AsyncIterator, Awaitable, Callable

from utxo_pruner.errors import StoppingError
from utxo_pruner.models.records import TransactionRecord

logger = logging.getLogger(__name__)


async def drain_candidates(
    candidates: AsyncIterator[TransactionRecord],
    process: Callable[[TransactionRecord], Awaitable[object]],
    is_stopping: Callable[[], bool],
    label: str = "candidates",
) -> int:
    """
    Feed each candidate to ``process`` one at a time.

    Any exception from ``process`` ends the drain immediately; the remaining
    candidates are not visited. Work already done is kept.

    Args:
        candidates: Lazy candidate sequence (closed on exit).
        process: Coroutine run for each candidate.
        is_stopping: Cancellation flag, checked before each candidate.
        label: Name used in progress logs.

    Returns:
        Number of candidates processed.

    Raises:
        StoppingError: ``is_stopping()`` turned true before the stream was
            exhausted.
    """
    processed = 0
    async with aclosing(candidates) as stream:
        async for tx in stream:
            if is_stopping():
                logger.info(f"Stopping {label} after {processed} candidate(s)")
                raise StoppingError(processed)
            await process(tx)
            processed += 1

    logger.info(f"Processed {processed} {label}")
    return processed

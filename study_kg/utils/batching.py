"""
Wave Scheduling

Runs async work in sequential waves of bounded size.

Within a wave every task is awaited with "settle all" semantics: a failing
task is recorded, never cancels its siblings. Wave N+1 starts only after
every task of wave N has settled, so peak concurrency equals the wave size
and callers can merge results between waves without locks. A small delay
between waves acts as a cooperative rate-limit courtesy.

Example:
    >>> outcomes = await run_in_waves(batches, extract_batch, wave_size=4, delay_seconds=0.1)
    >>> ok = [o.value for o in outcomes if o.succeeded]
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


@dataclass
class WaveOutcome(Generic[ResultT]):
    """Settled result of one scheduled item."""

    index: int
    value: ResultT | None = None
    error: Exception | None = None
    skipped: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.skipped


def chunked(items: Sequence[ItemT], size: int) -> list[list[ItemT]]:
    """Partition ``items`` into consecutive lists of at most ``size``."""
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


async def run_in_waves(
    items: Sequence[ItemT],
    worker: Callable[[int, ItemT], Awaitable[ResultT]],
    *,
    wave_size: int,
    delay_seconds: float = 0.0,
    deadline: float | None = None,
    label: str = "batch",
) -> list[WaveOutcome[ResultT]]:
    """
    Run ``worker(index, item)`` for every item, ``wave_size`` at a time.

    Args:
        items: Work items, scheduled in order
        worker: Coroutine function receiving the item index and the item
        wave_size: Maximum tasks in flight at once
        delay_seconds: Pause between consecutive waves
        deadline: ``time.monotonic()`` value after which no new wave starts;
            unscheduled items are reported as skipped
        label: Name used in log messages

    Returns:
        One WaveOutcome per item, in input order
    """
    if wave_size < 1:
        raise ValueError(f"wave_size must be >= 1, got {wave_size}")

    outcomes: list[WaveOutcome[ResultT]] = []
    waves = chunked(list(range(len(items))), wave_size)

    for wave_number, wave in enumerate(waves):
        if deadline is not None and time.monotonic() > deadline:
            logger.warning(
                f"Time budget exhausted: skipping {len(items) - len(outcomes)} "
                f"remaining {label}(es) from wave {wave_number + 1}/{len(waves)}"
            )
            outcomes.extend(WaveOutcome(index=i, skipped=True) for i in range(len(outcomes), len(items)))
            break

        if wave_number > 0 and delay_seconds > 0:
            await asyncio.sleep(delay_seconds)

        logger.debug(f"Wave {wave_number + 1}/{len(waves)}: {label}(es) {wave[0]}-{wave[-1]}")
        settled = await asyncio.gather(
            *(worker(i, items[i]) for i in wave),
            return_exceptions=True,
        )

        for i, result in zip(wave, settled):
            if isinstance(result, Exception):
                outcomes.append(WaveOutcome(index=i, error=result))
            elif isinstance(result, BaseException):
                raise result
            else:
                outcomes.append(WaveOutcome(index=i, value=result))

    return outcomes

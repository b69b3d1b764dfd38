"""
Stepped volume ramps.

A fade is a fixed number of discrete volume changes separated by equal
sleeps. Playback keeps running at each intermediate level.
"""

import asyncio
from typing import Awaitable, Callable

Sleep = Callable[[float], Awaitable[None]]


async def ramp_volume(apply: Callable[[float], None], start: float, end: float,
                      steps: int, step_seconds: float,
                      sleep: Sleep = asyncio.sleep) -> None:
    """
    Move from ``start`` to ``end`` in ``steps`` equal increments.

    Each increment waits ``step_seconds`` and then calls ``apply``. The last
    step lands exactly on ``end``. Intermediate values never overshoot.
    """
    if steps <= 0:
        apply(end)
        return
    low, high = min(start, end), max(start, end)
    delta = (end - start) / steps
    for i in range(1, steps + 1):
        await sleep(step_seconds)
        level = end if i == steps else start + delta * i
        apply(min(max(level, low), high))

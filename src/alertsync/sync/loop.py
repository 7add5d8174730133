from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import structlog

logger = structlog.get_logger()


async def run_periodically(
    name: str,
    tick: Callable[[], Awaitable[object]],
    interval: float,
    stop: asyncio.Event,
) -> None:
    """Run ``tick`` every ``interval`` seconds until ``stop`` is set.

    The stop event is checked before each tick; a tick in flight runs to
    completion. Tick failures are logged and the loop carries on.
    """
    logger.info("loop_started", loop=name, interval=interval)
    while not stop.is_set():
        try:
            await tick()
        except Exception as exc:
            logger.error("loop_tick_failed", loop=name, error_type=type(exc).__name__, error=str(exc))

        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass
    logger.info("loop_stopped", loop=name)

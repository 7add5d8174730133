from __future__ import annotations

import asyncio
from typing import Any, Coroutine

import structlog

logger = structlog.get_logger()


class BackgroundTasks:
    """Owns named background tasks so they can be observed and cancelled.

    Spawning a task under a name that is still running cancels the older
    task first.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[Any]] = {}
        self._closed = False

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        if self._closed:
            coro.close()
            raise RuntimeError("background tasks are shut down")

        previous = self._tasks.pop(name, None)
        if previous is not None and not previous.done():
            previous.cancel()
            logger.info("background_task_superseded", task=name)

        task = asyncio.create_task(coro, name=name)
        self._tasks[name] = task
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        name = task.get_name()
        if self._tasks.get(name) is task:
            del self._tasks[name]
        if task.cancelled():
            logger.debug("background_task_cancelled", task=name)
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "background_task_failed",
                task=name,
                error_type=type(exc).__name__,
                error=str(exc),
            )

    @property
    def pending(self) -> list[str]:
        return sorted(name for name, task in self._tasks.items() if not task.done())

    async def wait(self, name: str) -> None:
        """Wait for the named task, if any, to finish."""
        task = self._tasks.get(name)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel every task and wait for them to unwind."""
        self._closed = True
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

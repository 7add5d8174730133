import asyncio

import pytest

from alertsync.sync.loop import run_periodically
from alertsync.sync.tasks import BackgroundTasks


async def forever() -> None:
    await asyncio.sleep(3600)


async def explode() -> None:
    raise RuntimeError("boom")


@pytest.mark.asyncio
async def test_spawn_same_name_cancels_previous():
    tasks = BackgroundTasks()

    first = tasks.spawn(forever(), name="job")
    second = tasks.spawn(forever(), name="job")
    await asyncio.sleep(0)

    assert first.cancelled()
    assert not second.done()
    assert tasks.pending == ["job"]
    await tasks.shutdown()


@pytest.mark.asyncio
async def test_failed_task_is_dropped():
    tasks = BackgroundTasks()

    task = tasks.spawn(explode(), name="job")
    await asyncio.gather(task, return_exceptions=True)
    await asyncio.sleep(0)

    assert tasks.pending == []


@pytest.mark.asyncio
async def test_shutdown_cancels_everything_and_refuses_new_work():
    tasks = BackgroundTasks()
    a = tasks.spawn(forever(), name="a")
    b = tasks.spawn(forever(), name="b")

    await tasks.shutdown()

    assert a.cancelled() and b.cancelled()
    with pytest.raises(RuntimeError):
        tasks.spawn(forever(), name="c")


@pytest.mark.asyncio
async def test_wait_on_unknown_task_returns():
    await BackgroundTasks().wait("missing")


@pytest.mark.asyncio
async def test_periodic_loop_survives_failing_ticks_and_stops():
    stop = asyncio.Event()
    calls = 0

    async def tick() -> None:
        nonlocal calls
        calls += 1
        if calls == 3:
            stop.set()
        raise RuntimeError("tick failed")

    await asyncio.wait_for(run_periodically("test", tick, 0, stop), timeout=5)

    assert calls == 3


@pytest.mark.asyncio
async def test_periodic_loop_does_not_tick_once_stopped():
    stop = asyncio.Event()
    stop.set()
    calls = []

    async def tick() -> None:
        calls.append(1)

    await run_periodically("test", tick, 0, stop)

    assert calls == []

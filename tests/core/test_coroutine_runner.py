import asyncio

from src.core.utils import coroutine_runner
from src.core.utils.coroutine_runner import execute_coroutine_sync


async def answer() -> int:
    await asyncio.sleep(0)
    return 42


def test_execute_coroutine_sync_runs_factory() -> None:
    assert execute_coroutine_sync(coroutine=answer) == 42


def test_execute_coroutine_sync_reuses_worker_loop() -> None:
    loops: list[asyncio.AbstractEventLoop] = []

    async def capture() -> None:
        loops.append(asyncio.get_running_loop())

    execute_coroutine_sync(coroutine=capture)
    execute_coroutine_sync(coroutine=capture)

    assert loops[0] is loops[1]


def test_execute_coroutine_sync_replaces_closed_loop() -> None:
    execute_coroutine_sync(coroutine=answer)
    assert coroutine_runner._loop is not None
    coroutine_runner._loop.close()

    assert execute_coroutine_sync(coroutine=answer) == 42
    assert not coroutine_runner._loop.is_closed()

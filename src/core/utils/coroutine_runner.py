"""
Run async code from sync Celery tasks.

Worker processes keep one event loop for their whole life: the async engine's
pooled asyncpg connections are bound to the loop that opened them, so a fresh
loop per task would fail with "attached to a different loop".
"""

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

T = TypeVar("T")

_loop: asyncio.AbstractEventLoop | None = None


def execute_coroutine_sync(*, coroutine: Callable[[], Coroutine[Any, Any, T]]) -> T:
    """Call ``coroutine`` and run the result to completion on the worker loop."""
    return _get_worker_loop().run_until_complete(coroutine())


def _get_worker_loop() -> asyncio.AbstractEventLoop:
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    asyncio.set_event_loop(_loop)
    return _loop

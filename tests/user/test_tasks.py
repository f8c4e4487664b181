from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import pytest
from sqlalchemy.exc import OperationalError

from src.user import tasks
from tests.fakes.db import FakeAsyncSession, FakeResult


@pytest.fixture
def patched_session(
    monkeypatch: pytest.MonkeyPatch, fake_session: FakeAsyncSession
) -> FakeAsyncSession:
    @asynccontextmanager
    async def local_async_session() -> AsyncIterator[FakeAsyncSession]:
        yield fake_session

    monkeypatch.setattr(tasks, "local_async_session", local_async_session)
    return fake_session


@pytest.mark.asyncio
async def test_sweep_deletes_expired_tokens(patched_session: FakeAsyncSession) -> None:
    patched_session.execute.return_value = FakeResult(rowcount=3)

    assert await tasks._sweep_expired_refresh_tokens() == 3
    patched_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_sweep_store_failure_is_reported(
    patched_session: FakeAsyncSession, monkeypatch: pytest.MonkeyPatch
) -> None:
    captured: list[BaseException] = []
    monkeypatch.setattr(tasks.sentry_sdk, "capture_exception", captured.append)
    patched_session.execute.side_effect = OperationalError(
        "DELETE", {}, Exception("connection refused")
    )

    assert await tasks._sweep_expired_refresh_tokens() == 0
    patched_session.rollback.assert_awaited_once()
    assert len(captured) == 1


def test_sweep_task_reports_count(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(tasks, "execute_coroutine_sync", lambda *, coroutine: 5)

    assert tasks.sweep_expired_refresh_tokens() == "Deleted 5 expired refresh tokens."

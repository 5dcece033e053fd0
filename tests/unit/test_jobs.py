"""Tests for the in-process periodic job loops."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest

from config.settings import settings
from src.pp_settlement.application.jobs import BackgroundJobs


@asynccontextmanager
async def _session() -> AsyncIterator[AsyncMock]:
    yield AsyncMock()


@pytest.fixture(autouse=True)
def fast_intervals(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "SETTLEMENT_INTERVAL_SECONDS", 0.01)
    monkeypatch.setattr(settings, "ODDS_SYNC_INTERVAL_SECONDS", 0.01)
    monkeypatch.setattr(settings, "AUTO_LOCK_INTERVAL_SECONDS", 0.01)


@pytest.fixture
def jobs() -> tuple[BackgroundJobs, AsyncMock, AsyncMock, AsyncMock]:
    worker, odds_sync, events = AsyncMock(), AsyncMock(), AsyncMock()
    return BackgroundJobs(worker, odds_sync, events, session_factory=_session), worker, odds_sync, events


async def test_loops_tick_until_stopped(jobs: tuple) -> None:  # type: ignore[type-arg]
    runner, worker, odds_sync, events = jobs

    runner.start()
    assert runner.running is True
    await asyncio.sleep(0.05)
    await runner.stop()

    assert runner.running is False
    assert worker.run_once.await_count >= 2
    assert odds_sync.run_once.await_count >= 2
    assert events.auto_lock_started_events.await_count >= 2


async def test_failing_tick_keeps_loop_alive(
    jobs: tuple, caplog: pytest.LogCaptureFixture  # type: ignore[type-arg]
) -> None:
    runner, worker, _, _ = jobs
    worker.run_once.side_effect = RuntimeError("boom")

    runner.start()
    await asyncio.sleep(0.05)
    await runner.stop()

    assert worker.run_once.await_count >= 2
    assert "Background job settlement failed" in caplog.text


async def test_start_is_idempotent(jobs: tuple) -> None:  # type: ignore[type-arg]
    runner = jobs[0]
    runner.start()
    first = list(runner._tasks)
    runner.start()
    assert runner._tasks == first
    assert len(first) == 3
    await runner.stop()

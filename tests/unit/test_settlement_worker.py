"""Unit tests for the automated settlement worker."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from src.pp_common.enums import EventStatus
from src.pp_common.errors import (
    EventAlreadySettledError,
    ExternalUnavailableError,
    SettlementTimeoutError,
)
from src.pp_event.domain.models import Event
from src.pp_odds.domain.models import EventScore, ScoreEntry
from src.pp_settlement.application.worker import SYSTEM_SETTLER, SettlementWorker


@asynccontextmanager
async def _session() -> AsyncIterator[AsyncMock]:
    yield AsyncMock()


def _event(event_id: str, ext_id: str, sport: str = "soccer_epl") -> Event:
    return Event(
        id=event_id,
        title=f"Match {event_id}",
        starts_at=datetime.now(UTC) - timedelta(hours=3),
        outcomes=["Arsenal", "Draw", "Chelsea"],
        status=EventStatus.LOCKED.value,
        external_event_id=ext_id,
        external_sport_key=sport,
    )


def _final(ext_id: str, home: str, away: str, completed: bool = True) -> EventScore:
    return EventScore(
        id=ext_id,
        completed=completed,
        scores=[ScoreEntry("Arsenal", home), ScoreEntry("Chelsea", away)],
    )


@pytest.fixture
def repo() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def provider() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def event_service() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def worker(repo: AsyncMock, provider: AsyncMock, event_service: AsyncMock) -> SettlementWorker:
    return SettlementWorker(
        session_factory=_session,
        event_service=event_service,
        provider=provider,
        repo=repo,
        batch_size=10,
    )


async def test_settles_completed_events_with_mapped_winner(
    worker: SettlementWorker, repo: AsyncMock, provider: AsyncMock, event_service: AsyncMock
) -> None:
    repo.list_settleable.return_value = [_event("e1", "x1"), _event("e2", "x2"), _event("e3", "x3")]
    provider.get_scores.return_value = [
        _final("x1", "2", "1"),
        _final("x2", "1", "1"),
        _final("x3", "0", "0", completed=False),
    ]

    status = await worker.run_once()

    assert status.settled_events == 2
    assert status.skipped_events == 1
    assert status.failed_events == 0
    assert status.last_error is None
    assert status.last_run_at is not None
    provider.get_scores.assert_awaited_once_with("soccer_epl")
    settled = {call.args[1]: call.args[2] for call in event_service.settle.await_args_list}
    assert settled == {"e1": "Arsenal", "e2": "Draw"}
    assert {call.args[3] for call in event_service.settle.await_args_list} == {SYSTEM_SETTLER}


async def test_scores_fetched_once_per_sport(
    worker: SettlementWorker, repo: AsyncMock, provider: AsyncMock
) -> None:
    repo.list_settleable.return_value = [
        _event("e1", "x1", "soccer_epl"),
        _event("e2", "x2", "soccer_epl"),
        _event("e3", "x3", "basketball_nba"),
    ]
    provider.get_scores.return_value = []
    status = await worker.run_once()
    assert provider.get_scores.await_count == 2
    assert status.skipped_events == 3


async def test_failed_score_fetch_marks_group_failed_and_continues(
    worker: SettlementWorker, repo: AsyncMock, provider: AsyncMock, event_service: AsyncMock
) -> None:
    repo.list_settleable.return_value = [
        _event("e1", "x1", "soccer_epl"),
        _event("e2", "x2", "soccer_epl"),
        _event("e3", "x3", "tennis_atp"),
    ]

    async def scores(sport_key: str) -> list[EventScore]:
        if sport_key == "soccer_epl":
            raise ExternalUnavailableError("HTTP 500")
        return [_final("x3", "3", "0")]

    provider.get_scores.side_effect = scores
    status = await worker.run_once()

    assert status.failed_events == 2
    assert status.settled_events == 1
    assert {e.event_id for e in status.errors} == {"e1", "e2"}
    assert "Score fetch failed" in status.errors[0].error
    assert status.last_error == "2 event(s) failed"
    event_service.settle.assert_awaited_once()


async def test_unmatched_winner_is_skipped(
    worker: SettlementWorker, repo: AsyncMock, provider: AsyncMock, event_service: AsyncMock
) -> None:
    repo.list_settleable.return_value = [_event("e1", "x1")]
    provider.get_scores.return_value = [
        EventScore(id="x1", completed=True, scores=[ScoreEntry("Liverpool", "2"), ScoreEntry("Everton", "0")])
    ]
    status = await worker.run_once()
    assert status.skipped_events == 1
    event_service.settle.assert_not_called()


async def test_already_settled_counts_as_skipped(
    worker: SettlementWorker, repo: AsyncMock, provider: AsyncMock, event_service: AsyncMock
) -> None:
    repo.list_settleable.return_value = [_event("e1", "x1")]
    provider.get_scores.return_value = [_final("x1", "2", "0")]
    event_service.settle.side_effect = EventAlreadySettledError("e1", "SETTLED")

    status = await worker.run_once()
    assert status.skipped_events == 1
    assert status.failed_events == 0


async def test_settlement_failure_recorded_per_event(
    worker: SettlementWorker, repo: AsyncMock, provider: AsyncMock, event_service: AsyncMock
) -> None:
    repo.list_settleable.return_value = [_event("e1", "x1"), _event("e2", "x2")]
    provider.get_scores.return_value = [_final("x1", "2", "0"), _final("x2", "0", "2")]
    event_service.settle.side_effect = [SettlementTimeoutError("e1", 30), None]

    status = await worker.run_once()
    assert status.failed_events == 1
    assert status.settled_events == 1
    assert status.errors[0].event_id == "e1"


async def test_run_level_failure_is_recorded_not_raised(
    worker: SettlementWorker, repo: AsyncMock
) -> None:
    repo.list_settleable.side_effect = RuntimeError("db down")
    status = await worker.run_once()
    assert status.last_error == "db down"
    assert worker.get_status().last_error == "db down"


async def test_concurrent_run_is_skipped(
    worker: SettlementWorker, repo: AsyncMock, provider: AsyncMock
) -> None:
    release = asyncio.Event()

    async def slow_scores(sport_key: str) -> list[EventScore]:
        await release.wait()
        return []

    repo.list_settleable.return_value = [_event("e1", "x1")]
    provider.get_scores.side_effect = slow_scores

    first = asyncio.create_task(worker.run_once())
    while not worker.get_status().is_running:
        await asyncio.sleep(0)

    second = await worker.run_once()
    assert second.is_running
    assert provider.get_scores.await_count == 1

    release.set()
    done = await first
    assert not done.is_running
    assert done.skipped_events == 1


async def test_rerun_after_settlement_does_not_double_settle(
    worker: SettlementWorker, repo: AsyncMock, provider: AsyncMock, event_service: AsyncMock
) -> None:
    provider.get_scores.return_value = [_final("x1", "2", "0")]
    repo.list_settleable.side_effect = [[_event("e1", "x1")], []]

    first = await worker.run_once()
    second = await worker.run_once()

    assert first.settled_events == 1
    assert second.settled_events == 0
    event_service.settle.assert_awaited_once()


class SortedEventRepo:
    """Mirrors the settleable query: LOCKED only, (starts_at, id) order, keyset resume, limit."""

    def __init__(self, events: list[Event]) -> None:
        self.events = events
        self.calls: list[tuple[datetime, str] | None] = []

    async def list_settleable(
        self, db: object, limit: int, after: tuple[datetime, str] | None = None
    ) -> list[Event]:
        self.calls.append(after)
        rows = sorted(
            (e for e in self.events if e.status == EventStatus.LOCKED.value),
            key=lambda e: (e.starts_at, e.id),
        )
        if after is not None:
            rows = [e for e in rows if (e.starts_at, e.id) > after]
        return rows[:limit]


async def test_skipped_events_do_not_starve_newer_ones(
    provider: AsyncMock, event_service: AsyncMock
) -> None:
    base = datetime.now(UTC) - timedelta(days=2)
    stuck = [
        Event(
            id=f"old{i}",
            title=f"Tied {i}",
            starts_at=base + timedelta(minutes=i),
            outcomes=["A", "B"],
            status=EventStatus.LOCKED.value,
            external_event_id=f"t{i}",
            external_sport_key="soccer_epl",
        )
        for i in range(2)
    ]
    fresh = _event("new", "x9")
    repo = SortedEventRepo([*stuck, fresh])
    provider.get_scores.return_value = [
        EventScore(id="t0", completed=True, scores=[ScoreEntry("A", "1"), ScoreEntry("B", "1")]),
        EventScore(id="t1", completed=True, scores=[ScoreEntry("A", "0"), ScoreEntry("B", "0")]),
        _final("x9", "2", "0"),
    ]

    async def settle(db: object, event_id: str, outcome: str, settled_by: str) -> None:
        next(e for e in repo.events if e.id == event_id).status = EventStatus.SETTLED.value

    event_service.settle.side_effect = settle
    worker = SettlementWorker(
        session_factory=_session,
        event_service=event_service,
        provider=provider,
        repo=repo,
        batch_size=2,
    )

    first = await worker.run_once()
    assert first.settled_events == 0
    assert first.skipped_events == 2

    second = await worker.run_once()
    assert second.settled_events == 1
    assert fresh.status == EventStatus.SETTLED.value
    event_service.settle.assert_awaited_once()
    assert event_service.settle.await_args.args[1:] == ("new", "Arsenal", SYSTEM_SETTLER)

    # only the stuck pair is left; the short batch wraps back to the oldest
    third = await worker.run_once()
    assert third.skipped_events == 2
    assert repo.calls[-1] is None


async def test_exhausted_resume_point_wraps_in_the_same_run(
    worker: SettlementWorker, repo: AsyncMock, provider: AsyncMock
) -> None:
    worker._batch_size = 1
    first_batch = [_event("e1", "x1")]
    repo.list_settleable.side_effect = [first_batch, [], first_batch]
    provider.get_scores.return_value = []

    await worker.run_once()
    status = await worker.run_once()

    assert status.skipped_events == 1
    resumed, wrapped = repo.list_settleable.await_args_list[1:]
    assert resumed.args[2] == (first_batch[0].starts_at, "e1")
    assert wrapped.args[1:] == (1,)

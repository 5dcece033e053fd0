"""Pydantic request/response schemas for pp_event API."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from src.pp_event.domain.models import (
    DEFAULT_PAYOUT_MULTIPLIER,
    CancellationSummary,
    Event,
    EventPage,
    NewEvent,
    SettlementSummary,
)
from src.pp_prediction.domain.models import OutcomeStat

# ---------------------------------------------------------------------------
# Requests (admin)
# ---------------------------------------------------------------------------


class CreateEventRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    starts_at: datetime
    outcomes: list[str] = Field(..., min_length=2)
    payout_multiplier: Decimal = Field(DEFAULT_PAYOUT_MULTIPLIER, ge=1, le=10)
    external_event_id: str | None = Field(None, min_length=1)
    external_sport_key: str | None = Field(None, min_length=1)

    def to_domain(self) -> NewEvent:
        return NewEvent(
            title=self.title,
            description=self.description,
            starts_at=self.starts_at,
            outcomes=self.outcomes,
            payout_multiplier=self.payout_multiplier,
            external_event_id=self.external_event_id,
            external_sport_key=self.external_sport_key,
        )


class SettleEventRequest(BaseModel):
    final_outcome: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class EventResponse(BaseModel):
    id: str
    title: str
    description: str | None
    starts_at: datetime
    outcomes: list[str]
    payout_multiplier: str      # decimal string, e.g. "2.0000"
    status: str
    final_outcome: str | None
    external_event_id: str | None
    external_sport_key: str | None
    current_odds: dict[str, Any] | None
    odds_updated_at: datetime | None
    settled_by: str | None
    settled_at: datetime | None
    created_at: datetime | None
    prediction_count: int

    @classmethod
    def from_domain(cls, event: Event) -> "EventResponse":
        return cls(
            id=event.id,
            title=event.title,
            description=event.description,
            starts_at=event.starts_at,
            outcomes=event.outcomes,
            payout_multiplier=str(event.payout_multiplier),
            status=event.status,
            final_outcome=event.final_outcome,
            external_event_id=event.external_event_id,
            external_sport_key=event.external_sport_key,
            current_odds=event.current_odds,
            odds_updated_at=event.odds_updated_at,
            settled_by=event.settled_by,
            settled_at=event.settled_at,
            created_at=event.created_at,
            prediction_count=event.prediction_count,
        )


class EventListResponse(BaseModel):
    items: list[EventResponse]
    next_cursor: str | None
    has_more: bool
    total: int

    @classmethod
    def from_page(cls, page: EventPage) -> "EventListResponse":
        return cls(
            items=[EventResponse.from_domain(e) for e in page.items],
            next_cursor=page.next_cursor,
            has_more=page.has_more,
            total=page.total,
        )


class OutcomeStatItem(BaseModel):
    outcome: str
    count: int
    total_staked: int


class EventStatsResponse(BaseModel):
    event_id: str
    total_predictions: int
    total_staked: int
    outcomes: list[OutcomeStatItem]

    @classmethod
    def from_stats(cls, event: Event, stats: list[OutcomeStat]) -> "EventStatsResponse":
        by_outcome = {s.outcome: s for s in stats}
        # Every declared outcome is reported, including ones nobody picked
        items = [
            OutcomeStatItem(
                outcome=label,
                count=by_outcome[label].count if label in by_outcome else 0,
                total_staked=by_outcome[label].total_staked if label in by_outcome else 0,
            )
            for label in event.outcomes
        ]
        return cls(
            event_id=event.id,
            total_predictions=sum(s.count for s in stats),
            total_staked=sum(s.total_staked for s in stats),
            outcomes=items,
        )


class SettlementSummaryResponse(BaseModel):
    event_id: str
    final_outcome: str
    total_predictions: int
    winners: int
    losers: int
    total_payout: int
    settled_at: datetime

    @classmethod
    def from_domain(cls, summary: SettlementSummary) -> "SettlementSummaryResponse":
        return cls(
            event_id=summary.event_id,
            final_outcome=summary.final_outcome,
            total_predictions=summary.total_predictions,
            winners=summary.winners,
            losers=summary.losers,
            total_payout=summary.total_payout,
            settled_at=summary.settled_at,
        )


class CancellationSummaryResponse(BaseModel):
    event_id: str
    refunded: int
    total_refunded: int
    cancelled_at: datetime

    @classmethod
    def from_domain(cls, summary: CancellationSummary) -> "CancellationSummaryResponse":
        return cls(
            event_id=summary.event_id,
            refunded=summary.refunded,
            total_refunded=summary.total_refunded,
            cancelled_at=summary.cancelled_at,
        )


class EventOddsResponse(BaseModel):
    event_id: str
    odds: dict[str, Any] | None
    odds_updated_at: datetime | None
    source: str     # "live" | "cached" | "none"

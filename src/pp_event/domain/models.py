"""Domain models for pp_event — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

DEFAULT_PAYOUT_MULTIPLIER = Decimal("2.0")


@dataclass
class Event:
    id: str
    title: str
    starts_at: datetime
    outcomes: list[str]
    status: str                                  # EventStatus value
    payout_multiplier: Decimal = DEFAULT_PAYOUT_MULTIPLIER
    description: str | None = None
    final_outcome: str | None = None
    external_event_id: str | None = None
    external_sport_key: str | None = None
    current_odds: dict[str, Any] | None = None   # cached provider snapshot
    odds_updated_at: datetime | None = None
    created_by: str | None = None
    settled_by: str | None = None
    settled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    prediction_count: int = 0

    @property
    def has_external_mapping(self) -> bool:
        return bool(self.external_event_id and self.external_sport_key)


@dataclass
class NewEvent:
    title: str
    starts_at: datetime
    outcomes: list[str]
    payout_multiplier: Decimal = DEFAULT_PAYOUT_MULTIPLIER
    description: str | None = None
    external_event_id: str | None = None
    external_sport_key: str | None = None


@dataclass(frozen=True)
class SettlementSummary:
    event_id: str
    final_outcome: str
    total_predictions: int
    winners: int
    losers: int
    total_payout: int
    settled_at: datetime


@dataclass(frozen=True)
class CancellationSummary:
    event_id: str
    refunded: int
    total_refunded: int
    cancelled_at: datetime


@dataclass
class EventPage:
    items: list[Event]
    next_cursor: str | None
    has_more: bool
    total: int = 0

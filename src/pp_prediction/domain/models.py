"""Domain models for pp_prediction — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class Prediction:
    id: str
    user_id: str
    event_id: str
    predicted_outcome: str          # canonical event outcome label
    stake_amount: int               # tokens
    status: str                     # PredictionStatus value
    original_odds: Decimal | None = None   # decimal price captured at placement
    payout: int | None = None       # points, set on WON / CASHED_OUT
    cashout_amount: int | None = None
    cashed_out_at: datetime | None = None
    settled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class CashoutQuote:
    prediction_id: str
    cashout_value: int
    current_odds: Decimal
    original_odds: Decimal
    event_started: bool
    odds_age_seconds: int
    odds_updated_at: datetime


@dataclass(frozen=True)
class OutcomeStat:
    outcome: str
    count: int
    total_staked: int


@dataclass(frozen=True)
class UserPredictionStats:
    total: int
    won: int
    lost: int
    pending: int
    cashed_out: int
    refunded: int
    total_winnings: int
    total_staked: int

    @property
    def win_rate(self) -> float:
        decided = self.won + self.lost
        return round(self.won / decided * 100, 2) if decided else 0.0


@dataclass
class PredictionPage:
    items: list[Prediction]
    next_cursor: str | None
    has_more: bool


@dataclass(frozen=True)
class CashoutResult:
    prediction: Prediction
    cashout_amount: int
    points_balance: int

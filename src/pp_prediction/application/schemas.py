"""Pydantic request/response schemas for pp_prediction API."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.pp_prediction.domain.models import (
    CashoutQuote,
    CashoutResult,
    Prediction,
    PredictionPage,
    UserPredictionStats,
)


class PlacePredictionRequest(BaseModel):
    event_id: str = Field(..., min_length=1)
    predicted_outcome: str = Field(..., min_length=1)
    stake_amount: int = Field(..., description="Tokens to stake (range enforced by the service)")


class PredictionResponse(BaseModel):
    id: str
    event_id: str
    predicted_outcome: str
    stake_amount: int
    status: str
    original_odds: str | None       # decimal string
    payout: int | None
    cashout_amount: int | None
    cashed_out_at: datetime | None
    settled_at: datetime | None
    created_at: datetime | None

    @classmethod
    def from_domain(cls, p: Prediction) -> "PredictionResponse":
        return cls(
            id=p.id,
            event_id=p.event_id,
            predicted_outcome=p.predicted_outcome,
            stake_amount=p.stake_amount,
            status=p.status,
            original_odds=str(p.original_odds) if p.original_odds is not None else None,
            payout=p.payout,
            cashout_amount=p.cashout_amount,
            cashed_out_at=p.cashed_out_at,
            settled_at=p.settled_at,
            created_at=p.created_at,
        )


class PredictionListResponse(BaseModel):
    items: list[PredictionResponse]
    next_cursor: str | None
    has_more: bool

    @classmethod
    def from_page(cls, page: PredictionPage) -> "PredictionListResponse":
        return cls(
            items=[PredictionResponse.from_domain(p) for p in page.items],
            next_cursor=page.next_cursor,
            has_more=page.has_more,
        )


class UserStatsResponse(BaseModel):
    total: int
    won: int
    lost: int
    pending: int
    cashed_out: int
    refunded: int
    win_rate: float     # percent of decided predictions
    total_winnings: int
    total_staked: int

    @classmethod
    def from_domain(cls, s: UserPredictionStats) -> "UserStatsResponse":
        return cls(
            total=s.total,
            won=s.won,
            lost=s.lost,
            pending=s.pending,
            cashed_out=s.cashed_out,
            refunded=s.refunded,
            win_rate=s.win_rate,
            total_winnings=s.total_winnings,
            total_staked=s.total_staked,
        )


class CashoutQuoteResponse(BaseModel):
    prediction_id: str
    cashout_value: int
    current_odds: str
    original_odds: str
    event_started: bool
    odds_age_seconds: int
    odds_updated_at: datetime

    @classmethod
    def from_domain(cls, q: CashoutQuote) -> "CashoutQuoteResponse":
        return cls(
            prediction_id=q.prediction_id,
            cashout_value=q.cashout_value,
            current_odds=str(q.current_odds),
            original_odds=str(q.original_odds),
            event_started=q.event_started,
            odds_age_seconds=q.odds_age_seconds,
            odds_updated_at=q.odds_updated_at,
        )


class CashoutResponse(BaseModel):
    prediction: PredictionResponse
    cashout_amount: int
    points_balance: int

    @classmethod
    def from_domain(cls, r: CashoutResult) -> "CashoutResponse":
        return cls(
            prediction=PredictionResponse.from_domain(r.prediction),
            cashout_amount=r.cashout_amount,
            points_balance=r.points_balance,
        )

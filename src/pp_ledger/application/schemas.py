"""Pydantic response schemas for pp_ledger API."""

from pydantic import BaseModel

from src.pp_ledger.domain.models import (
    BalanceCheck,
    BalanceSnapshot,
    LedgerEntry,
    LedgerPage,
)


class BalanceResponse(BaseModel):
    balance: int
    verified: bool

    @classmethod
    def from_snapshot(cls, snapshot: BalanceSnapshot) -> "BalanceResponse":
        return cls(balance=snapshot.cached, verified=snapshot.cached == snapshot.calculated)


class BalanceCheckResponse(BaseModel):
    user_id: str
    cached: int
    calculated: int
    is_valid: bool
    discrepancy: int

    @classmethod
    def from_domain(cls, check: BalanceCheck) -> "BalanceCheckResponse":
        return cls(
            user_id=check.user_id,
            cached=check.cached,
            calculated=check.calculated,
            is_valid=check.is_valid,
            discrepancy=check.discrepancy,
        )


class LedgerEntryItem(BaseModel):
    id: int
    tx_type: str
    amount: int
    balance_after: int
    reference_type: str | None
    reference_id: str | None
    description: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, entry: LedgerEntry) -> "LedgerEntryItem":
        return cls(
            id=entry.id,
            tx_type=entry.tx_type,
            amount=entry.amount,
            balance_after=entry.balance_after,
            reference_type=entry.reference_type,
            reference_id=entry.reference_id,
            description=entry.description,
            created_at=entry.created_at.isoformat() if entry.created_at else "",
        )


class LedgerHistoryResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool
    total: int

    @classmethod
    def from_page(cls, page: LedgerPage) -> "LedgerHistoryResponse":
        return cls(
            items=[LedgerEntryItem.from_domain(e) for e in page.items],
            next_cursor=page.next_cursor,
            has_more=page.has_more,
            total=page.total,
        )

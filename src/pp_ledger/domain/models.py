"""Domain models for pp_ledger — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass
class LedgerEntry:
    id: int                          # BIGSERIAL
    user_id: str
    tx_type: str                     # Token/PointsTransactionType value
    amount: int                      # signed: positive=credit, negative=debit
    balance_after: int               # cached balance snapshot after this entry
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None


@dataclass
class LedgerEntryInput:
    """What a caller asks the engine to post. ``amount`` is always positive here;
    the engine applies the sign for debits."""

    user_id: str
    amount: int
    tx_type: Enum | str
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class LedgerResult:
    new_balance: int
    transaction_id: int


@dataclass(frozen=True)
class BalanceSnapshot:
    cached: int
    calculated: int


@dataclass(frozen=True)
class BalanceCheck:
    user_id: str
    cached: int
    calculated: int

    @property
    def is_valid(self) -> bool:
        return self.cached == self.calculated

    @property
    def discrepancy(self) -> int:
        return self.cached - self.calculated


@dataclass
class LedgerPage:
    items: list[LedgerEntry]
    next_cursor: str | None
    has_more: bool
    total: int

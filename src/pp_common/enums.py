"""Global enums — must match DB CHECK constraints exactly (see alembic/versions)."""

from enum import Enum


class TokenTransactionType(str, Enum):
    DAILY_ALLOWANCE = "DAILY_ALLOWANCE"
    SIGNUP_BONUS = "SIGNUP_BONUS"
    PREDICTION_STAKE = "PREDICTION_STAKE"
    PREDICTION_WIN = "PREDICTION_WIN"
    PREDICTION_REFUND = "PREDICTION_REFUND"
    REDEMPTION = "REDEMPTION"
    # Reserved for a regulated purchase flow; rejected by the ledger engine
    PURCHASE = "PURCHASE"
    ADMIN_CREDIT = "ADMIN_CREDIT"
    ADMIN_DEBIT = "ADMIN_DEBIT"


class PointsTransactionType(str, Enum):
    PREDICTION_WIN = "PREDICTION_WIN"
    CASHOUT = "CASHOUT"
    REDEMPTION = "REDEMPTION"
    REDEMPTION_REFUND = "REDEMPTION_REFUND"
    ADMIN_CREDIT = "ADMIN_CREDIT"
    ADMIN_DEBIT = "ADMIN_DEBIT"


class EventStatus(str, Enum):
    OPEN = "OPEN"
    LOCKED = "LOCKED"
    SETTLED = "SETTLED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (EventStatus.SETTLED, EventStatus.CANCELLED)


class PredictionStatus(str, Enum):
    PENDING = "PENDING"
    WON = "WON"
    LOST = "LOST"
    REFUNDED = "REFUNDED"
    CASHED_OUT = "CASHED_OUT"


class RedemptionStatus(str, Enum):
    PENDING = "PENDING"
    FULFILLED = "FULFILLED"
    CANCELLED = "CANCELLED"


class ReferenceType(str, Enum):
    PREDICTION = "PREDICTION"
    REDEMPTION = "REDEMPTION"
    ADMIN = "ADMIN"


class AdminAction(str, Enum):
    CREATE_EVENT = "CREATE_EVENT"
    LOCK_EVENT = "LOCK_EVENT"
    SETTLE_EVENT = "SETTLE_EVENT"
    CANCEL_EVENT = "CANCEL_EVENT"
    CREDIT_TOKENS = "CREDIT_TOKENS"
    REPAIR_BALANCE = "REPAIR_BALANCE"
    CREATE_REWARD = "CREATE_REWARD"
    UPDATE_REWARD = "UPDATE_REWARD"
    FULFIL_REDEMPTION = "FULFIL_REDEMPTION"
    CANCEL_REDEMPTION = "CANCEL_REDEMPTION"

"""Domain models for pp_allowance — pure dataclasses and the top-up rule."""

from dataclasses import dataclass
from datetime import date


@dataclass
class TokenAllowance:
    user_id: str
    tokens_remaining: int
    last_reset_date: date


@dataclass(frozen=True)
class ConsumeResult:
    token_balance: int       # token ledger balance after the stake debit
    tokens_remaining: int    # allowance counter after the decrement
    transaction_id: int


def compute_top_up(
    tokens_remaining: int,
    days_elapsed: int,
    daily_grant: int,
    max_allowance: int,
) -> int:
    """Tokens to grant after ``days_elapsed`` whole UTC days of inactivity.

    Each elapsed day is worth one daily grant, but the remaining counter is
    never pushed past ``max_allowance``: an inactive week at 5/day with a cap of
    35 and 30 left yields 5, not 35.
    """
    if days_elapsed < 1 or daily_grant <= 0:
        return 0
    headroom = max(0, max_allowance - tokens_remaining)
    return min(days_elapsed * daily_grant, headroom)

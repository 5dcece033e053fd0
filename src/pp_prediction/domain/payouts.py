"""Payout and cashout valuation — pure Decimal arithmetic, floored to whole points.

Floats are never used: 3 x 1.5 must floor to exactly 4, and odds arrive as
decimal strings from the provider and NUMERIC(10,4) from the database.
"""

from decimal import ROUND_FLOOR, Decimal

CASHOUT_MARGIN_BEFORE_START = Decimal("0.95")
CASHOUT_MARGIN_AFTER_START = Decimal("0.90")


def _to_decimal(value: Decimal | float | int | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 1.1 as 1.1 instead of its binary float expansion
    return Decimal(str(value))


def _floor(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def calculate_payout(stake: int, odds: Decimal | float | int | str) -> int:
    """Points paid to a winning prediction: floor(stake x odds)."""
    if stake <= 0:
        return 0
    return max(0, _floor(Decimal(stake) * _to_decimal(odds)))


def cashout_margin(event_started: bool) -> Decimal:
    return CASHOUT_MARGIN_AFTER_START if event_started else CASHOUT_MARGIN_BEFORE_START


def calculate_cashout_value(
    stake: int,
    original_odds: Decimal | float | int | str,
    current_odds: Decimal | float | int | str,
    event_started: bool,
) -> int:
    """max(0, floor(stake x original/current x margin)).

    Rises above the stake when the market has shortened on the chosen outcome
    (original > current) and falls when it has drifted.
    """
    current = _to_decimal(current_odds)
    if stake <= 0 or current <= 0:
        return 0
    value = Decimal(stake) * _to_decimal(original_odds) / current * cashout_margin(event_started)
    return max(0, _floor(value))

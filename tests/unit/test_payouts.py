"""Unit tests for payout and cashout valuation."""

from decimal import Decimal

import pytest

from src.pp_prediction.domain.payouts import (
    calculate_cashout_value,
    calculate_payout,
    cashout_margin,
)


class TestPayout:
    def test_floors_to_whole_points(self) -> None:
        assert calculate_payout(3, Decimal("1.5")) == 4

    def test_float_and_string_odds_use_decimal_arithmetic(self) -> None:
        assert calculate_payout(10, 1.1) == 11
        assert calculate_payout(10, "2.35") == 23

    def test_default_multiplier(self) -> None:
        assert calculate_payout(7, Decimal("2.0")) == 14

    def test_non_positive_stake_pays_nothing(self) -> None:
        assert calculate_payout(0, 2) == 0
        assert calculate_payout(-5, 2) == 0


class TestCashout:
    def test_margin_depends_on_event_start(self) -> None:
        assert cashout_margin(False) == Decimal("0.95")
        assert cashout_margin(True) == Decimal("0.90")

    @pytest.mark.parametrize(
        ("stake", "original", "current", "started", "expected"),
        [
            (10, "2", "2", False, 9),     # 9.5
            (10, "2", "2", True, 9),      # 9.0
            (10, "3", "2", False, 14),    # 14.25, shortened market
            (10, "2", "3", False, 6),     # 6.33, drifted market
            (1, "1.1", "100", False, 0),  # rounds to zero
        ],
    )
    def test_cashout_values(
        self, stake: int, original: str, current: str, started: bool, expected: int
    ) -> None:
        assert calculate_cashout_value(stake, original, current, started) == expected

    def test_zero_current_odds_gives_zero(self) -> None:
        assert calculate_cashout_value(10, "2", "0", False) == 0

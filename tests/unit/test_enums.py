"""Tests for pp_common.enums — values must match the DB CHECK constraints."""

from src.pp_common.enums import (
    AdminAction,
    EventStatus,
    PointsTransactionType,
    PredictionStatus,
    RedemptionStatus,
    TokenTransactionType,
)


class TestAllEnumsAreStr:
    def test_str_values(self) -> None:
        assert isinstance(EventStatus.OPEN, str)
        assert PredictionStatus.CASHED_OUT == "CASHED_OUT"
        assert AdminAction.SETTLE_EVENT == "SETTLE_EVENT"


class TestTransactionTypes:
    def test_token_types(self) -> None:
        expected = {
            "DAILY_ALLOWANCE", "SIGNUP_BONUS", "PREDICTION_STAKE", "PREDICTION_WIN",
            "PREDICTION_REFUND", "REDEMPTION", "PURCHASE", "ADMIN_CREDIT", "ADMIN_DEBIT",
        }
        assert {t.value for t in TokenTransactionType} == expected

    def test_points_types(self) -> None:
        expected = {
            "PREDICTION_WIN", "CASHOUT", "REDEMPTION", "REDEMPTION_REFUND",
            "ADMIN_CREDIT", "ADMIN_DEBIT",
        }
        assert {t.value for t in PointsTransactionType} == expected

    def test_points_cannot_be_purchased(self) -> None:
        assert "PURCHASE" not in PointsTransactionType.__members__


class TestLifecycles:
    def test_event_terminal_states(self) -> None:
        assert {s for s in EventStatus if s.is_terminal} == {
            EventStatus.SETTLED, EventStatus.CANCELLED,
        }

    def test_prediction_statuses(self) -> None:
        assert {s.value for s in PredictionStatus} == {
            "PENDING", "WON", "LOST", "REFUNDED", "CASHED_OUT",
        }

    def test_redemption_statuses(self) -> None:
        assert {s.value for s in RedemptionStatus} == {"PENDING", "FULFILLED", "CANCELLED"}

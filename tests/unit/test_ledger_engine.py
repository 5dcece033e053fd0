"""Unit tests for the generic ledger engine (in-memory adapter, mocked session)."""

from unittest.mock import AsyncMock

import pytest

from src.pp_common.enums import PointsTransactionType, TokenTransactionType
from src.pp_common.errors import (
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidTransactionTypeError,
    ReservedTransactionTypeError,
    UserNotFoundError,
)
from src.pp_common.pagination import cursor_decode
from src.pp_ledger.domain.engine import LedgerEngine
from src.pp_ledger.domain.models import LedgerEntryInput


def _entry(amount: int, tx_type: object = TokenTransactionType.ADMIN_CREDIT, user: str = "u1") -> LedgerEntryInput:
    return LedgerEntryInput(user_id=user, amount=amount, tx_type=tx_type)  # type: ignore[arg-type]


class TestCreditDebit:
    async def test_credit_updates_balance_and_appends_entry(
        self, token_engine: LedgerEngine, token_adapter, mock_db: AsyncMock
    ) -> None:
        token_adapter.balances["u1"] = 10
        result = await token_engine.credit(mock_db, _entry(5))

        assert result.new_balance == 15
        assert token_adapter.balances["u1"] == 15
        [entry] = token_adapter.entries
        assert entry.amount == 5
        assert entry.balance_after == 15
        assert entry.tx_type == "ADMIN_CREDIT"
        mock_db.commit.assert_awaited_once()

    async def test_debit_stores_negative_amount(
        self, token_engine: LedgerEngine, token_adapter, mock_db: AsyncMock
    ) -> None:
        token_adapter.balances["u1"] = 10
        result = await token_engine.debit(mock_db, _entry(4, TokenTransactionType.PREDICTION_STAKE))

        assert result.new_balance == 6
        assert token_adapter.entries[0].amount == -4

    async def test_debit_below_zero_rejected_and_nothing_written(
        self, token_engine: LedgerEngine, token_adapter, mock_db: AsyncMock
    ) -> None:
        token_adapter.balances["u1"] = 3
        with pytest.raises(InsufficientBalanceError) as exc_info:
            await token_engine.debit(mock_db, _entry(4, TokenTransactionType.PREDICTION_STAKE))

        assert exc_info.value.required == 4
        assert exc_info.value.available == 3
        assert token_adapter.balances["u1"] == 3
        assert token_adapter.entries == []
        mock_db.rollback.assert_awaited_once()

    async def test_debit_to_exactly_zero_allowed(
        self, token_engine: LedgerEngine, token_adapter, mock_db: AsyncMock
    ) -> None:
        token_adapter.balances["u1"] = 4
        result = await token_engine.debit(mock_db, _entry(4, TokenTransactionType.PREDICTION_STAKE))
        assert result.new_balance == 0

    @pytest.mark.parametrize("amount", [0, -1, True])
    async def test_non_positive_or_bool_amount_rejected(
        self, token_engine: LedgerEngine, token_adapter, mock_db: AsyncMock, amount: int
    ) -> None:
        token_adapter.balances["u1"] = 10
        with pytest.raises(InvalidAmountError):
            await token_engine.credit(mock_db, _entry(amount))
        with pytest.raises(InvalidAmountError):
            await token_engine.debit(mock_db, _entry(amount))

    async def test_purchase_is_reserved_on_both_sides(
        self, token_engine: LedgerEngine, token_adapter, mock_db: AsyncMock
    ) -> None:
        token_adapter.balances["u1"] = 10
        with pytest.raises(ReservedTransactionTypeError):
            await token_engine.credit(mock_db, _entry(1, TokenTransactionType.PURCHASE))
        with pytest.raises(ReservedTransactionTypeError):
            await token_engine.debit(mock_db, _entry(1, "PURCHASE"))
        assert token_adapter.entries == []

    async def test_foreign_transaction_type_rejected(
        self, points_engine: LedgerEngine, points_adapter, mock_db: AsyncMock
    ) -> None:
        points_adapter.balances["u1"] = 0
        with pytest.raises(InvalidTransactionTypeError):
            await points_engine.credit(mock_db, _entry(1, TokenTransactionType.DAILY_ALLOWANCE))

    async def test_unknown_user_raises_not_found(
        self, token_engine: LedgerEngine, mock_db: AsyncMock
    ) -> None:
        with pytest.raises(UserNotFoundError):
            await token_engine.credit(mock_db, _entry(1, user="ghost"))

    async def test_join_leaves_commit_to_caller(
        self, token_engine: LedgerEngine, token_adapter, mock_db: AsyncMock
    ) -> None:
        token_adapter.balances["u1"] = 0
        await token_engine.credit(mock_db, _entry(2), join=True)
        mock_db.commit.assert_not_awaited()


class TestBalanceAudit:
    async def test_cached_balance_matches_ledger_sum_after_mixed_postings(
        self, points_engine: LedgerEngine, points_adapter, mock_db: AsyncMock
    ) -> None:
        points_adapter.balances["u1"] = 0
        await points_engine.credit(mock_db, _entry(30, PointsTransactionType.PREDICTION_WIN))
        await points_engine.debit(mock_db, _entry(12, PointsTransactionType.REDEMPTION))
        await points_engine.credit(mock_db, _entry(12, PointsTransactionType.REDEMPTION_REFUND))

        check = await points_engine.verify_balance(mock_db, "u1")
        assert check.is_valid
        assert check.cached == check.calculated == 30
        assert [e.balance_after for e in points_adapter.entries] == [30, 18, 30]

    async def test_repair_resets_cached_balance_to_ledger_sum(
        self, token_engine: LedgerEngine, token_adapter, mock_db: AsyncMock
    ) -> None:
        token_adapter.balances["u1"] = 0
        await token_engine.credit(mock_db, _entry(7))
        token_adapter.balances["u1"] = 100  # drift

        before = await token_engine.verify_balance(mock_db, "u1")
        assert not before.is_valid
        assert before.discrepancy == 93

        repaired = await token_engine.repair_balance(mock_db, "u1")
        assert repaired.is_valid
        assert token_adapter.balances["u1"] == 7


class TestHistory:
    async def test_history_pages_newest_first_with_cursor(
        self, token_engine: LedgerEngine, token_adapter, mock_db: AsyncMock
    ) -> None:
        token_adapter.balances["u1"] = 0
        for _ in range(5):
            await token_engine.credit(mock_db, _entry(1))

        first = await token_engine.get_history(mock_db, "u1", limit=2)
        assert [e.id for e in first.items] == [5, 4]
        assert first.has_more
        assert first.total == 5
        assert cursor_decode(first.next_cursor) == {"id": 4}

        second = await token_engine.get_history(mock_db, "u1", cursor=first.next_cursor, limit=2)
        assert [e.id for e in second.items] == [3, 2]

        last = await token_engine.get_history(mock_db, "u1", cursor=second.next_cursor, limit=2)
        assert [e.id for e in last.items] == [1]
        assert not last.has_more
        assert last.next_cursor is None

    async def test_history_type_filter(
        self, token_engine: LedgerEngine, token_adapter, mock_db: AsyncMock
    ) -> None:
        token_adapter.balances["u1"] = 10
        await token_engine.credit(mock_db, _entry(1, TokenTransactionType.DAILY_ALLOWANCE))
        await token_engine.debit(mock_db, _entry(2, TokenTransactionType.PREDICTION_STAKE))

        page = await token_engine.get_history(mock_db, "u1", tx_types=["PREDICTION_STAKE"])
        assert [e.tx_type for e in page.items] == ["PREDICTION_STAKE"]
        assert page.total == 1

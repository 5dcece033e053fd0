"""The two currency configurations of the ledger engine.

Tokens are spent on stakes and replenished by the daily allowance; points are
earned from wins and cashouts and spent on rewards. They share the engine but
never a balance column or an entry table.
"""

from src.pp_common.enums import PointsTransactionType, TokenTransactionType
from src.pp_ledger.domain.engine import LedgerEngine
from src.pp_ledger.infrastructure.persistence import SqlLedgerAdapter

token_ledger = LedgerEngine(
    name="token",
    adapter=SqlLedgerAdapter(balance_column="token_balance", entry_table="token_transactions"),
    tx_types=TokenTransactionType,
    reserved_types=frozenset({TokenTransactionType.PURCHASE.value}),
)

points_ledger = LedgerEngine(
    name="points",
    adapter=SqlLedgerAdapter(balance_column="points_balance", entry_table="points_transactions"),
    tx_types=PointsTransactionType,
)

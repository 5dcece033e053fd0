"""003: create token_transactions and points_transactions

Append-only ledgers. amount is signed (credit > 0, debit < 0) and
balance_after snapshots the cached balance right after the entry.

Revision ID: 003
Revises: 002
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_TOKEN_TYPES = (
    "'DAILY_ALLOWANCE', 'SIGNUP_BONUS', 'PREDICTION_STAKE', 'PREDICTION_WIN', "
    "'PREDICTION_REFUND', 'REDEMPTION', 'PURCHASE', 'ADMIN_CREDIT', 'ADMIN_DEBIT'"
)
_POINTS_TYPES = (
    "'PREDICTION_WIN', 'CASHOUT', 'REDEMPTION', 'REDEMPTION_REFUND', "
    "'ADMIN_CREDIT', 'ADMIN_DEBIT'"
)


def _create_ledger(table: str, tx_types: str) -> None:
    op.execute(f"""
        CREATE TABLE {table} (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(32)     NOT NULL REFERENCES users(id),
            tx_type         VARCHAR(32)     NOT NULL,
            amount          BIGINT          NOT NULL,
            balance_after   BIGINT          NOT NULL,
            reference_type  VARCHAR(32),
            reference_id    VARCHAR(64),
            description     TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_{table}_type          CHECK (tx_type IN ({tx_types})),
            CONSTRAINT ck_{table}_amount        CHECK (amount <> 0),
            CONSTRAINT ck_{table}_balance_after CHECK (balance_after >= 0)
        );
    """)
    op.execute(f"CREATE INDEX idx_{table}_user_id ON {table} (user_id, id DESC);")
    op.execute(f"CREATE INDEX idx_{table}_reference ON {table} (reference_type, reference_id);")


def upgrade() -> None:
    _create_ledger("token_transactions", _TOKEN_TYPES)
    _create_ledger("points_transactions", _POINTS_TYPES)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS points_transactions CASCADE;")
    op.execute("DROP TABLE IF EXISTS token_transactions CASCADE;")

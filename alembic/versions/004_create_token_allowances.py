"""004: create token_allowances

Revision ID: 004
Revises: 003
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE token_allowances (
            user_id             VARCHAR(32)     PRIMARY KEY REFERENCES users(id),
            tokens_remaining    INTEGER         NOT NULL DEFAULT 0,
            last_reset_date     DATE            NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_token_allowances_remaining CHECK (tokens_remaining >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_token_allowances_updated_at
            BEFORE UPDATE ON token_allowances
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS token_allowances CASCADE;")

"""006: create predictions

One prediction per (user, event), enforced by uq_predictions_user_event.

Revision ID: 006
Revises: 005
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE predictions (
            id                  VARCHAR(32)     PRIMARY KEY,
            user_id             VARCHAR(32)     NOT NULL REFERENCES users(id),
            event_id            VARCHAR(32)     NOT NULL REFERENCES events(id),
            predicted_outcome   TEXT            NOT NULL,
            stake_amount        INTEGER         NOT NULL,
            status              VARCHAR(16)     NOT NULL DEFAULT 'PENDING',
            original_odds       NUMERIC(10, 4),
            payout              BIGINT,
            cashout_amount      BIGINT,
            cashed_out_at       TIMESTAMPTZ,
            settled_at          TIMESTAMPTZ,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_predictions_user_event UNIQUE (user_id, event_id),
            CONSTRAINT ck_predictions_stake CHECK (stake_amount > 0),
            CONSTRAINT ck_predictions_status CHECK (
                status IN ('PENDING', 'WON', 'LOST', 'REFUNDED', 'CASHED_OUT')
            ),
            CONSTRAINT ck_predictions_payout CHECK (payout IS NULL OR payout >= 0),
            CONSTRAINT ck_predictions_cashout CHECK (
                (status = 'CASHED_OUT') = (cashed_out_at IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_predictions_user ON predictions (user_id, created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_predictions_event_status ON predictions (event_id, status);")
    op.execute("""
        CREATE TRIGGER trg_predictions_updated_at
            BEFORE UPDATE ON predictions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS predictions CASCADE;")

"""007: create rewards and redemptions

Revision ID: 007
Revises: 006
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE rewards (
            id              VARCHAR(32)     PRIMARY KEY,
            name            VARCHAR(200)    NOT NULL,
            description     TEXT,
            points_cost     BIGINT          NOT NULL,
            stock_limit     INTEGER,
            stock_claimed   INTEGER         NOT NULL DEFAULT 0,
            image_url       TEXT,
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_rewards_cost CHECK (points_cost > 0),
            CONSTRAINT ck_rewards_stock CHECK (
                stock_claimed >= 0 AND (stock_limit IS NULL OR stock_claimed <= stock_limit)
            )
        );
    """)
    op.execute("""
        CREATE TABLE redemptions (
            id              VARCHAR(32)     PRIMARY KEY,
            user_id         VARCHAR(32)     NOT NULL REFERENCES users(id),
            reward_id       VARCHAR(32)     NOT NULL REFERENCES rewards(id),
            points_cost     BIGINT          NOT NULL,
            status          VARCHAR(16)     NOT NULL DEFAULT 'PENDING',
            fulfilled_by    VARCHAR(64),
            fulfilled_at    TIMESTAMPTZ,
            fulfilment_note TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_redemptions_status CHECK (status IN ('PENDING', 'FULFILLED', 'CANCELLED')),
            CONSTRAINT ck_redemptions_cost CHECK (points_cost > 0)
        );
    """)
    op.execute("CREATE INDEX idx_rewards_active_cost ON rewards (is_active, points_cost);")
    op.execute("CREATE INDEX idx_redemptions_user ON redemptions (user_id, created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_redemptions_status ON redemptions (status, created_at DESC);")
    for table in ("rewards", "redemptions"):
        op.execute(f"""
            CREATE TRIGGER trg_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
        """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS redemptions CASCADE;")
    op.execute("DROP TABLE IF EXISTS rewards CASCADE;")

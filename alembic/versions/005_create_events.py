"""005: create events

Revision ID: 005
Revises: 004
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE events (
            id                  VARCHAR(32)     PRIMARY KEY,
            title               VARCHAR(200)    NOT NULL,
            description         TEXT,
            starts_at           TIMESTAMPTZ     NOT NULL,
            outcomes            TEXT[]          NOT NULL,
            payout_multiplier   NUMERIC(6, 2)   NOT NULL DEFAULT 2.00,
            status              VARCHAR(16)     NOT NULL DEFAULT 'OPEN',
            final_outcome       TEXT,
            external_event_id   VARCHAR(128),
            external_sport_key  VARCHAR(128),
            current_odds        JSONB,
            odds_updated_at     TIMESTAMPTZ,
            created_by          VARCHAR(64),
            settled_by          VARCHAR(64),
            settled_at          TIMESTAMPTZ,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_events_status CHECK (status IN ('OPEN', 'LOCKED', 'SETTLED', 'CANCELLED')),
            CONSTRAINT ck_events_outcomes CHECK (array_length(outcomes, 1) >= 2),
            CONSTRAINT ck_events_multiplier CHECK (payout_multiplier >= 1.0 AND payout_multiplier <= 10.0),
            CONSTRAINT ck_events_final_outcome CHECK (
                status <> 'SETTLED' OR final_outcome IS NOT NULL
            )
        );
    """)
    op.execute("CREATE INDEX idx_events_status_starts_at ON events (status, starts_at, id);")
    op.execute("""
        CREATE INDEX idx_events_external ON events (external_sport_key, external_event_id)
        WHERE external_event_id IS NOT NULL;
    """)
    op.execute("""
        CREATE TRIGGER trg_events_updated_at
            BEFORE UPDATE ON events
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS events CASCADE;")

"""008: create admin_audit_logs

Revision ID: 008
Revises: 007
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE admin_audit_logs (
            id          VARCHAR(32)     PRIMARY KEY,
            admin_id    VARCHAR(32)     NOT NULL,
            action      VARCHAR(32)     NOT NULL,
            target_type VARCHAR(32)     NOT NULL,
            target_id   VARCHAR(64)     NOT NULL,
            details     JSONB,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_admin_audit_logs_created ON admin_audit_logs (created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_admin_audit_logs_target ON admin_audit_logs (target_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS admin_audit_logs CASCADE;")

"""007: create disputes table

Revision ID: 007
Revises: 006
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE disputes (
            id           VARCHAR(32)  PRIMARY KEY,
            order_id     VARCHAR(32)  NOT NULL REFERENCES orders(id),
            opened_by    VARCHAR(64)  NOT NULL,
            reason       TEXT         NOT NULL,
            status       VARCHAR(20)  NOT NULL DEFAULT 'open',
            outcome      VARCHAR(10),
            resolution   TEXT,
            reviewed_by  VARCHAR(64),
            resolved_by  VARCHAR(64),
            resolved_at  TIMESTAMPTZ,
            created_at   TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at   TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_disputes_order_id UNIQUE (order_id),
            CONSTRAINT ck_disputes_status CHECK (
                status IN ('open', 'in_review', 'resolved_refund', 'resolved_release')
            ),
            CONSTRAINT ck_disputes_resolved CHECK (
                (status IN ('open', 'in_review') AND resolved_at IS NULL)
                OR (status IN ('resolved_refund', 'resolved_release')
                    AND resolved_at IS NOT NULL AND resolved_by IS NOT NULL)
            )
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_disputes_updated_at
            BEFORE UPDATE ON disputes
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS disputes CASCADE;")

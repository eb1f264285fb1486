"""005: create offers table

Revision ID: 005
Revises: 004
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE offers (
            id                  VARCHAR(32)   PRIMARY KEY,
            vendor_id           VARCHAR(64)   NOT NULL,
            trade_intent        VARCHAR(10)   NOT NULL,
            currency            VARCHAR(16)   NOT NULL,
            price_per_unit      BIGINT        NOT NULL,
            min_limit           BIGINT        NOT NULL,
            max_limit           BIGINT        NOT NULL,
            available_amount    BIGINT        NOT NULL,
            escrow_held_amount  BIGINT        NOT NULL DEFAULT 0,
            payment_methods     VARCHAR(50)[] NOT NULL,
            terms               TEXT,
            is_active           BOOLEAN       NOT NULL DEFAULT TRUE,
            created_at          TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_offers_intent CHECK (trade_intent IN ('sell_ad', 'buy_ad')),
            CONSTRAINT ck_offers_price_gt_0 CHECK (price_per_unit > 0),
            CONSTRAINT ck_offers_limits CHECK (min_limit > 0 AND min_limit <= max_limit),
            CONSTRAINT ck_offers_available_gte_0 CHECK (available_amount >= 0),
            CONSTRAINT ck_offers_escrow_gte_0 CHECK (escrow_held_amount >= 0)
        );
    """)
    op.execute("""
        CREATE INDEX idx_offers_active ON offers (trade_intent, currency, id DESC)
            WHERE is_active = TRUE;
    """)
    op.execute("CREATE INDEX idx_offers_vendor ON offers (vendor_id, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_offers_updated_at
            BEFORE UPDATE ON offers
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS offers CASCADE;")

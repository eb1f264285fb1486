"""006: create orders table

Revision ID: 006
Revises: 005
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id                   VARCHAR(32)  PRIMARY KEY,
            offer_id             VARCHAR(32)  NOT NULL REFERENCES offers(id),
            created_by           VARCHAR(64)  NOT NULL,
            vendor_id            VARCHAR(64)  NOT NULL,
            buyer_id             VARCHAR(64)  NOT NULL,
            seller_id            VARCHAR(64)  NOT NULL,
            trade_intent         VARCHAR(10)  NOT NULL,
            currency             VARCHAR(16)  NOT NULL,
            amount               BIGINT       NOT NULL,
            fiat_amount          BIGINT       NOT NULL,
            price_per_unit       BIGINT       NOT NULL,
            payment_method       VARCHAR(50)  NOT NULL,
            status               VARCHAR(20)  NOT NULL,
            escrow_amount        BIGINT       NOT NULL DEFAULT 0,
            platform_fee         BIGINT       NOT NULL DEFAULT 0,
            seller_receives      BIGINT       NOT NULL DEFAULT 0,
            delivery_note        TEXT,
            cancel_reason        VARCHAR(500),
            buyer_paid_at        TIMESTAMPTZ,
            vendor_confirmed_at  TIMESTAMPTZ,
            completed_at         TIMESTAMPTZ,
            cancelled_at         TIMESTAMPTZ,
            escrow_held_at       TIMESTAMPTZ,
            escrow_released_at   TIMESTAMPTZ,
            auto_release_at      TIMESTAMPTZ,
            created_at           TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at           TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_status CHECK (
                status IN ('created', 'awaiting_deposit', 'escrowed', 'paid', 'confirmed',
                           'completed', 'cancelled', 'disputed')
            ),
            CONSTRAINT ck_orders_intent CHECK (trade_intent IN ('sell_ad', 'buy_ad')),
            CONSTRAINT ck_orders_amounts CHECK (
                amount > 0 AND fiat_amount > 0 AND escrow_amount >= 0
                AND platform_fee >= 0 AND seller_receives >= 0
            )
        );
    """)
    op.execute("CREATE INDEX idx_orders_buyer ON orders (buyer_id, id DESC);")
    op.execute("CREATE INDEX idx_orders_seller ON orders (seller_id, id DESC);")
    op.execute("""
        CREATE INDEX idx_orders_auto_release ON orders (auto_release_at)
            WHERE status = 'confirmed';
    """)
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")

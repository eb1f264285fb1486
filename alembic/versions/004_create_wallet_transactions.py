"""004: create wallet_transactions table (append-only)

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE wallet_transactions (
            id                BIGSERIAL    PRIMARY KEY,
            user_id           VARCHAR(64)  NOT NULL,
            wallet_id         UUID         NOT NULL REFERENCES wallets(id),
            tx_type           VARCHAR(20)  NOT NULL,
            amount            BIGINT       NOT NULL,
            currency          VARCHAR(16)  NOT NULL,
            balance_after     BIGINT       NOT NULL,
            escrow_after      BIGINT       NOT NULL,
            related_order_id  VARCHAR(32),
            related_offer_id  VARCHAR(32),
            description       VARCHAR(500),
            created_at        TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_wallet_tx_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_wallet_tx_type CHECK (
                tx_type IN ('deposit', 'withdraw', 'escrow_hold', 'escrow_release',
                            'refund', 'payout', 'fee')
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_wallet_tx_user_id ON wallet_transactions (user_id, id DESC);
    """)
    op.execute("""
        CREATE INDEX idx_wallet_tx_order ON wallet_transactions (related_order_id)
            WHERE related_order_id IS NOT NULL;
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS wallet_transactions CASCADE;")

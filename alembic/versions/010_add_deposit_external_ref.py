"""010: deposit external reference, unique per credited deposit

Revision ID: 010
Revises: 009
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "010"
down_revision: Union[str, None] = "009"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        ALTER TABLE wallet_transactions ADD COLUMN external_ref VARCHAR(200);
    """)
    # A chain tx hash can be credited once; redelivery from the feed hits this index
    op.execute("""
        CREATE UNIQUE INDEX uq_wallet_tx_deposit_ref ON wallet_transactions (external_ref)
            WHERE tx_type = 'deposit' AND external_ref IS NOT NULL;
    """)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS uq_wallet_tx_deposit_ref;")
    op.execute("ALTER TABLE wallet_transactions DROP COLUMN IF EXISTS external_ref;")

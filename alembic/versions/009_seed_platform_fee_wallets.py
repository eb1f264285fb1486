"""009: seed PLATFORM_FEE system wallet

Revision ID: 009
Revises: 008
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op

revision: str = "009"
down_revision: Union[str, None] = "008"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One row per supported currency; add rows here when SUPPORTED_CURRENCIES grows
    op.execute("""
        INSERT INTO wallets (user_id, currency, available_balance, escrow_balance, version)
        VALUES ('PLATFORM_FEE', 'USDT', 0, 0, 0)
        ON CONFLICT (user_id, currency) DO NOTHING;
    """)


def downgrade() -> None:
    op.execute("DELETE FROM wallets WHERE user_id = 'PLATFORM_FEE';")

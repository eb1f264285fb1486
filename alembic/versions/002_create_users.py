"""002: create users table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            id                  UUID         PRIMARY KEY DEFAULT gen_random_uuid(),
            username            VARCHAR(64)  NOT NULL,
            email               VARCHAR(255) NOT NULL,
            password_hash       VARCHAR(255) NOT NULL,
            role                VARCHAR(20)  NOT NULL DEFAULT 'customer',
            kyc_status          VARCHAR(20)  NOT NULL DEFAULT 'pending',
            is_active           BOOLEAN      NOT NULL DEFAULT TRUE,
            is_frozen           BOOLEAN      NOT NULL DEFAULT FALSE,
            frozen_reason       VARCHAR(500),
            two_factor_enabled  BOOLEAN      NOT NULL DEFAULT FALSE,
            two_factor_secret   VARCHAR(64),
            created_at          TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_username UNIQUE (username),
            CONSTRAINT uq_users_email    UNIQUE (email),
            CONSTRAINT ck_users_role CHECK (
                role IN ('admin', 'vendor', 'customer', 'support', 'dispute_admin')
            ),
            CONSTRAINT ck_users_kyc_status CHECK (
                kyc_status IN ('pending', 'approved', 'rejected')
            )
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")

"""008: create notifications, chat_messages and audit_logs tables

Revision ID: 008
Revises: 007
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE notifications (
            id          BIGSERIAL    PRIMARY KEY,
            user_id     VARCHAR(64)  NOT NULL,
            type        VARCHAR(20)  NOT NULL,
            title       VARCHAR(200) NOT NULL,
            message     TEXT         NOT NULL,
            link        VARCHAR(500),
            is_read     BOOLEAN      NOT NULL DEFAULT FALSE,
            created_at  TIMESTAMPTZ  NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_notifications_user ON notifications (user_id, id DESC);")
    op.execute("""
        CREATE TABLE chat_messages (
            id                 BIGSERIAL    PRIMARY KEY,
            order_id           VARCHAR(32)  NOT NULL REFERENCES orders(id),
            sender_id          VARCHAR(64),
            message            TEXT         NOT NULL,
            is_system_message  BOOLEAN      NOT NULL DEFAULT FALSE,
            created_at         TIMESTAMPTZ  NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_chat_messages_order ON chat_messages (order_id, id);")
    op.execute("""
        CREATE TABLE audit_logs (
            id           BIGSERIAL    PRIMARY KEY,
            actor_id     VARCHAR(64)  NOT NULL,
            action       VARCHAR(50)  NOT NULL,
            resource     VARCHAR(50)  NOT NULL,
            resource_id  VARCHAR(64)  NOT NULL,
            changes      JSONB        NOT NULL DEFAULT '{}'::jsonb,
            created_at   TIMESTAMPTZ  NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_audit_logs_resource ON audit_logs (resource, resource_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS audit_logs CASCADE;")
    op.execute("DROP TABLE IF EXISTS chat_messages CASCADE;")
    op.execute("DROP TABLE IF EXISTS notifications CASCADE;")

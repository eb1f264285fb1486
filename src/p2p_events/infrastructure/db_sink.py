"""DbEventSink — writes notifications, chat_messages and audit_logs rows."""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_INSERT_NOTIFICATION_SQL = text("""
    INSERT INTO notifications (user_id, type, title, message, link)
    VALUES (:user_id, :type, :title, :message, :link)
""")

_INSERT_SYSTEM_MESSAGE_SQL = text("""
    INSERT INTO chat_messages (order_id, sender_id, message, is_system_message)
    VALUES (:order_id, NULL, :message, TRUE)
""")

_INSERT_AUDIT_SQL = text("""
    INSERT INTO audit_logs (actor_id, action, resource, resource_id, changes)
    VALUES (:actor_id, :action, :resource, :resource_id, CAST(:changes AS JSONB))
""")


class DbEventSink:
    """Caller owns the transaction; nothing here commits."""

    async def notify(
        self,
        db: AsyncSession,
        user_id: str,
        type: str,
        title: str,
        message: str,
        link: str | None = None,
    ) -> None:
        await db.execute(
            _INSERT_NOTIFICATION_SQL,
            {"user_id": user_id, "type": type, "title": title, "message": message, "link": link},
        )

    async def system_message(self, db: AsyncSession, order_id: str, message: str) -> None:
        await db.execute(_INSERT_SYSTEM_MESSAGE_SQL, {"order_id": order_id, "message": message})

    async def audit(
        self,
        db: AsyncSession,
        actor_id: str,
        action: str,
        resource: str,
        resource_id: str,
        changes: dict[str, Any] | None = None,
    ) -> None:
        await db.execute(
            _INSERT_AUDIT_SQL,
            {
                "actor_id": actor_id,
                "action": action,
                "resource": resource,
                "resource_id": resource_id,
                "changes": json.dumps(changes or {}, default=str),
            },
        )

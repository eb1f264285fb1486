"""Event sink Protocol — notifications, order system messages, audit trail.

Delivery (push, email, chat transport) is external. The core only records
the events, inside the same database transaction as the change they describe,
so a rolled-back transition leaves no stray notification behind.
"""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession


class EventSinkProtocol(Protocol):
    async def notify(
        self,
        db: AsyncSession,
        user_id: str,
        type: str,
        title: str,
        message: str,
        link: str | None = None,
    ) -> None: ...

    async def system_message(self, db: AsyncSession, order_id: str, message: str) -> None: ...

    async def audit(
        self,
        db: AsyncSession,
        actor_id: str,
        action: str,
        resource: str,
        resource_id: str,
        changes: dict[str, Any] | None = None,
    ) -> None: ...

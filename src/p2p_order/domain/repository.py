"""Repository Protocol for orders."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_order.domain.models import Order


class OrderRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, order: Order) -> Order: ...

    async def get(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def get_for_update(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def compare_and_set(
        self, db: AsyncSession, order: Order, expected_status: str
    ) -> Order | None:
        """Persist `order` only if the stored status is still `expected_status`."""
        ...

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Order]: ...

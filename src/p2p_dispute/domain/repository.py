"""Repository Protocol for disputes."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_dispute.domain.models import Dispute


class DisputeRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, dispute: Dispute) -> Dispute:
        """Raises AlreadyDisputedError when the order already has a dispute."""
        ...

    async def get(self, db: AsyncSession, dispute_id: str) -> Dispute | None: ...

    async def get_for_update(self, db: AsyncSession, dispute_id: str) -> Dispute | None: ...

    async def get_by_order(self, db: AsyncSession, order_id: str) -> Dispute | None: ...

    async def compare_and_set(
        self, db: AsyncSession, dispute: Dispute, expected_status: str
    ) -> Dispute | None: ...

    async def list_by_status(
        self, db: AsyncSession, statuses: list[str], cursor_id: str | None, limit: int
    ) -> list[Dispute]: ...

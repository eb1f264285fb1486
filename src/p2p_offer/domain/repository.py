"""Repository Protocol for offers — in-memory fakes implement it in unit tests."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_offer.domain.models import Offer


class OfferRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, offer: Offer) -> Offer: ...

    async def get(self, db: AsyncSession, offer_id: str) -> Offer | None: ...

    async def get_for_update(self, db: AsyncSession, offer_id: str) -> Offer | None: ...

    async def update(self, db: AsyncSession, offer: Offer) -> Offer: ...

    async def list_active(
        self,
        db: AsyncSession,
        trade_intent: str | None,
        currency: str | None,
        payment_method: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Offer]: ...

    async def list_by_vendor(
        self, db: AsyncSession, vendor_id: str, cursor_id: str | None, limit: int
    ) -> list[Offer]: ...

    async def get_kyc_status(self, db: AsyncSession, user_id: str) -> str | None: ...

"""OfferApplicationService — listing, editing and closing offers.

buy_ad listings are backed by escrow reserved from the lister's wallet at
creation time. Any change that alters the backing requirement (price edit)
reserves or refunds the difference in the same transaction; closing refunds
whatever is still unassigned.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.p2p_common.actor import Actor
from src.p2p_common.enums import KycStatus, TradeIntent, UserRole
from src.p2p_common.errors import (
    AccountFrozenError,
    KycNotApprovedError,
    NotAuthorizedError,
    OfferNotActiveError,
    OfferNotFoundError,
    UnsupportedCurrencyError,
)
from src.p2p_common.id_generator import generate_id
from src.p2p_common.unit_of_work import unit_of_work
from src.p2p_escrow.domain.engine import EscrowEngine
from src.p2p_events.domain.sink import EventSinkProtocol
from src.p2p_events.infrastructure.db_sink import DbEventSink
from src.p2p_offer.application.schemas import (
    CreateOfferRequest,
    OfferListResponse,
    OfferResponse,
    UpdateOfferRequest,
    cursor_decode,
    cursor_encode,
)
from src.p2p_offer.domain.models import Offer
from src.p2p_offer.domain.repository import OfferRepositoryProtocol
from src.p2p_offer.domain.rules import required_reservation, validate_limits
from src.p2p_offer.infrastructure.persistence import OfferRepository
from src.p2p_wallet.domain.repository import WalletRepositoryProtocol
from src.p2p_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)

_LISTING_ROLES = (UserRole.VENDOR, UserRole.ADMIN)


class OfferApplicationService:
    def __init__(
        self,
        repo: OfferRepositoryProtocol | None = None,
        wallet_repo: WalletRepositoryProtocol | None = None,
        escrow: EscrowEngine | None = None,
        events: EventSinkProtocol | None = None,
    ) -> None:
        self._repo: OfferRepositoryProtocol = repo or OfferRepository()
        self._wallets: WalletRepositoryProtocol = wallet_repo or WalletRepository()
        self._escrow = escrow or EscrowEngine(self._wallets)
        self._events: EventSinkProtocol = events or DbEventSink()

    async def create_offer(
        self, db: AsyncSession, actor: Actor, req: CreateOfferRequest
    ) -> OfferResponse:
        async with unit_of_work(db, "create_offer", actor.user_id):
            await self._require_can_list(db, actor)
            if req.currency not in settings.SUPPORTED_CURRENCIES:
                raise UnsupportedCurrencyError(req.currency)
            validate_limits(req.min_limit, req.max_limit)

            offer = Offer(
                id=generate_id(),
                vendor_id=actor.user_id,
                trade_intent=req.trade_intent.value,
                currency=req.currency,
                price_per_unit=req.price_per_unit,
                min_limit=req.min_limit,
                max_limit=req.max_limit,
                available_amount=req.available_amount,
                payment_methods=req.payment_methods,
                terms=req.terms,
            )
            reservation = required_reservation(offer)
            if reservation > 0:
                # A failing reservation rejects the listing; nothing is written
                await self._escrow.reserve_for_offer(
                    db, actor.user_id, offer.currency, reservation, offer.id
                )
                offer.escrow_held_amount = reservation
            offer = await self._repo.insert(db, offer)
            await self._events.audit(
                db, actor.user_id, "offer.create", "offer", offer.id,
                {"trade_intent": offer.trade_intent, "escrow_held": offer.escrow_held_amount},
            )
        logger.info(
            "Offer created: id=%s vendor=%s intent=%s reserved=%d",
            offer.id, offer.vendor_id, offer.trade_intent, offer.escrow_held_amount,
        )
        return OfferResponse.from_offer(offer)

    async def update_offer(
        self, db: AsyncSession, actor: Actor, offer_id: str, req: UpdateOfferRequest
    ) -> OfferResponse:
        async with unit_of_work(db, "update_offer", offer_id):
            offer = await self._lock_owned(db, actor, offer_id, allow_admin=False)
            if not offer.is_active:
                raise OfferNotActiveError(offer_id)
            if await self._wallets.is_frozen(db, actor.user_id):
                raise AccountFrozenError(actor.user_id)

            if req.min_limit is not None:
                offer.min_limit = req.min_limit
            if req.max_limit is not None:
                offer.max_limit = req.max_limit
            validate_limits(offer.min_limit, offer.max_limit)
            if req.payment_methods is not None:
                offer.payment_methods = req.payment_methods
            if req.terms is not None:
                offer.terms = req.terms
            if req.price_per_unit is not None and req.price_per_unit != offer.price_per_unit:
                offer.price_per_unit = req.price_per_unit
                await self._rebalance_reservation(db, offer)

            offer = await self._repo.update(db, offer)
        logger.info("Offer updated: id=%s", offer.id)
        return OfferResponse.from_offer(offer)

    async def close_offer(self, db: AsyncSession, actor: Actor, offer_id: str) -> OfferResponse:
        """Deactivate; refund unassigned buy_ad escrow. Orders already placed are unaffected."""
        async with unit_of_work(db, "close_offer", offer_id):
            offer = await self._lock_owned(db, actor, offer_id, allow_admin=True)
            if not offer.is_active:
                raise OfferNotActiveError(offer_id)
            residual = offer.escrow_held_amount
            offer.is_active = False
            offer.escrow_held_amount = 0
            if residual > 0:
                await self._escrow.refund_offer_residual(
                    db, offer.vendor_id, offer.currency, residual, offer.id
                )
            offer = await self._repo.update(db, offer)
            await self._events.audit(
                db, actor.user_id, "offer.close", "offer", offer.id, {"refunded": residual}
            )
        logger.info("Offer closed: id=%s refunded=%d", offer.id, residual)
        return OfferResponse.from_offer(offer)

    async def get_offer(self, db: AsyncSession, offer_id: str) -> OfferResponse:
        offer = await self._repo.get(db, offer_id)
        if offer is None:
            raise OfferNotFoundError(offer_id)
        return OfferResponse.from_offer(offer)

    async def list_offers(
        self,
        db: AsyncSession,
        trade_intent: str | None,
        currency: str | None,
        payment_method: str | None,
        cursor: str | None,
        limit: int,
    ) -> OfferListResponse:
        offers = await self._repo.list_active(
            db, trade_intent, currency, payment_method, cursor_decode(cursor), limit + 1
        )
        return _page(offers, limit)

    async def list_my_offers(
        self, db: AsyncSession, actor: Actor, cursor: str | None, limit: int
    ) -> OfferListResponse:
        offers = await self._repo.list_by_vendor(
            db, actor.user_id, cursor_decode(cursor), limit + 1
        )
        return _page(offers, limit)

    # ------------------------------------------------------------------

    async def _require_can_list(self, db: AsyncSession, actor: Actor) -> None:
        if actor.role not in _LISTING_ROLES:
            raise NotAuthorizedError("Only vendors can list offers")
        if await self._repo.get_kyc_status(db, actor.user_id) != KycStatus.APPROVED:
            raise KycNotApprovedError()
        if await self._wallets.is_frozen(db, actor.user_id):
            raise AccountFrozenError(actor.user_id)

    async def _lock_owned(
        self, db: AsyncSession, actor: Actor, offer_id: str, allow_admin: bool
    ) -> Offer:
        offer = await self._repo.get_for_update(db, offer_id)
        if offer is None:
            raise OfferNotFoundError(offer_id)
        if offer.vendor_id != actor.user_id and not (allow_admin and actor.is_admin):
            raise NotAuthorizedError("Only the listing vendor can change this offer")
        return offer

    async def _rebalance_reservation(self, db: AsyncSession, offer: Offer) -> None:
        if offer.trade_intent != TradeIntent.BUY_AD:
            return
        delta = required_reservation(offer) - offer.escrow_held_amount
        if delta > 0:
            await self._escrow.reserve_for_offer(db, offer.vendor_id, offer.currency, delta, offer.id)
        elif delta < 0:
            await self._escrow.refund_offer_residual(
                db, offer.vendor_id, offer.currency, -delta, offer.id
            )
        offer.escrow_held_amount += delta


def _page(offers: list[Offer], limit: int) -> OfferListResponse:
    has_more = len(offers) > limit
    page = offers[:limit]
    return OfferListResponse(
        items=[OfferResponse.from_offer(o) for o in page],
        next_cursor=cursor_encode(page[-1].id) if has_more and page else None,
        has_more=has_more,
    )

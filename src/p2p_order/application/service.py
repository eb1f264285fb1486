"""OrderApplicationService — the order/escrow state machine.

    created ─┐
             ├─> escrowed ─> paid ─> confirmed ─> completed
             │      │          │         │
             └──────┴──────────┴─────────┴──> disputed (p2p_dispute)
    cancelled: buyer from created|escrowed, admin from created|escrowed|paid

Every transition runs in one transaction:
  1. SELECT ... FOR UPDATE on the order (and the offer, when it changes)
  2. guards: status, actor, freeze, step-up; all before any fund movement
  3. escrow call, if any
  4. compare-and-swap UPDATE on the observed status
  5. system chat message, counterparty notification, audit row
Any failure rolls the whole unit back, so a rejected transition is a no-op.
"""

import logging
from datetime import datetime, timedelta
from functools import partial

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.p2p_common.actor import SYSTEM_ACTOR, Actor
from src.p2p_common.datetime_utils import utc_now
from src.p2p_common.enums import NotificationType, OrderStatus, TradeIntent, UserRole
from src.p2p_common.errors import (
    AccountFrozenError,
    InvalidStateError,
    NotAuthorizedError,
    OfferNotActiveError,
    OfferNotFoundError,
    OrderNotFoundError,
    StepUpRequiredError,
)
from src.p2p_common.id_generator import generate_id
from src.p2p_common.unit_of_work import UnitOfWork, unit_of_work
from src.p2p_common.units import units_to_display
from src.p2p_escrow.domain.engine import EscrowEngine
from src.p2p_events.domain.sink import EventSinkProtocol
from src.p2p_events.infrastructure.db_sink import DbEventSink
from src.p2p_gateway.auth.step_up import StepUpVerifier, TotpStepUpVerifier
from src.p2p_offer.domain.repository import OfferRepositoryProtocol
from src.p2p_offer.domain.rules import apply_fill, restore_fill
from src.p2p_offer.infrastructure.persistence import OfferRepository
from src.p2p_order.application.schemas import (
    CreateOrderRequest,
    OrderListResponse,
    OrderResponse,
    cursor_decode,
    cursor_encode,
)
from src.p2p_order.application.settlement import (
    persist_transition,
    refund_to_buyer,
    release_to_seller,
)
from src.p2p_order.domain.models import Order
from src.p2p_order.domain.parties import parties_of, resolve_parties
from src.p2p_order.domain.repository import OrderRepositoryProtocol
from src.p2p_order.domain.rules import validate_order_request
from src.p2p_order.domain.transitions import (
    CONFIRM_FROM,
    DELIVER_FROM,
    MARK_PAID_FROM,
    cancel_sources_for,
    is_participant,
    require_buyer,
    require_buyer_or_admin,
    require_seller_or_admin,
    require_status,
)
from src.p2p_order.infrastructure.persistence import OrderRepository
from src.p2p_wallet.domain.repository import WalletRepositoryProtocol
from src.p2p_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)

# Roles that may read any order (support staff and dispute handling)
_STAFF_ROLES = (UserRole.ADMIN, UserRole.DISPUTE_ADMIN, UserRole.SUPPORT)


class OrderApplicationService:
    def __init__(
        self,
        repo: OrderRepositoryProtocol | None = None,
        offer_repo: OfferRepositoryProtocol | None = None,
        wallet_repo: WalletRepositoryProtocol | None = None,
        escrow: EscrowEngine | None = None,
        events: EventSinkProtocol | None = None,
        step_up: StepUpVerifier | None = None,
    ) -> None:
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()
        self._offers: OfferRepositoryProtocol = offer_repo or OfferRepository()
        self._wallets: WalletRepositoryProtocol = wallet_repo or WalletRepository()
        self._escrow = escrow or EscrowEngine(self._wallets)
        self._events: EventSinkProtocol = events or DbEventSink()
        self._step_up: StepUpVerifier = step_up or TotpStepUpVerifier()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def create_order(
        self, db: AsyncSession, actor: Actor, req: CreateOrderRequest
    ) -> OrderResponse:
        async with unit_of_work(db, "create_order", req.offer_id):
            await self._require_not_frozen(db, actor)
            offer = await self._offers.get_for_update(db, req.offer_id)
            if offer is None:
                raise OfferNotFoundError(req.offer_id)
            if not offer.is_active:
                raise OfferNotActiveError(offer.id)
            validate_order_request(
                offer, actor.user_id, req.amount, req.fiat_amount, req.payment_method
            )

            parties = resolve_parties(offer.trade_intent, actor.user_id, offer.vendor_id)
            # buy_ad: the fiat is already in the lister's escrow, only the pool shrinks
            fill = apply_fill(offer, req.amount, req.fiat_amount)
            now = utc_now()
            order = Order(
                id=generate_id(),
                offer_id=offer.id,
                created_by=actor.user_id,
                vendor_id=offer.vendor_id,
                trade_intent=offer.trade_intent,
                currency=offer.currency,
                amount=req.amount,
                fiat_amount=req.fiat_amount,
                price_per_unit=offer.price_per_unit,
                payment_method=req.payment_method,
                status=OrderStatus.ESCROWED.value,
                buyer_id=parties.buyer_id,
                seller_id=parties.seller_id,
                escrow_amount=fill.escrow,
                escrow_held_at=now,
            )
            if offer.trade_intent == TradeIntent.SELL_AD:
                await self._escrow.hold(
                    db, parties.buyer_id, order.currency, order.escrow_amount, order.id
                )
            order = await self._repo.insert(db, order)
            await self._offers.update(db, offer)
            if fill.residual > 0:
                await self._escrow.refund_offer_residual(
                    db, offer.vendor_id, offer.currency, fill.residual, offer.id
                )
            await self._announce(
                db, order, actor,
                title="New order",
                message=f"Order created, {units_to_display(order.escrow_amount)} "
                f"{order.currency} held in escrow",
                audit_action="order.create",
            )
        logger.info(
            "Order created: id=%s offer=%s buyer=%s seller=%s escrow=%d",
            order.id, order.offer_id, order.buyer_id, order.seller_id, order.escrow_amount,
        )
        return OrderResponse.from_order(order)

    async def mark_paid(self, db: AsyncSession, actor: Actor, order_id: str) -> OrderResponse:
        async with unit_of_work(db, "mark_paid", order_id):
            order = await self._lock(db, order_id)
            require_status(order, MARK_PAID_FROM, "mark paid")
            require_buyer(order, actor)
            expected = order.status
            order.status = OrderStatus.PAID.value
            order.buyer_paid_at = utc_now()
            order = await persist_transition(db, self._repo, order, expected, "mark paid")
            await self._announce(
                db, order, actor, title="Payment sent", message="Buyer marked the order as paid"
            )
        self._log_transition(order, expected, actor)
        return OrderResponse.from_order(order)

    async def deliver(
        self, db: AsyncSession, actor: Actor, order_id: str, delivery_note: str | None = None
    ) -> OrderResponse:
        async with unit_of_work(db, "deliver", order_id):
            order = await self._lock(db, order_id)
            require_status(order, DELIVER_FROM, "deliver")
            require_seller_or_admin(order, actor)
            expected = order.status
            now = utc_now()
            order.status = OrderStatus.CONFIRMED.value
            order.vendor_confirmed_at = now
            order.delivery_note = delivery_note
            order.auto_release_at = now + timedelta(minutes=settings.AUTO_RELEASE_MINUTES)
            order = await persist_transition(db, self._repo, order, expected, "deliver")
            await self._announce(
                db, order, actor,
                title="Order delivered",
                message="Seller delivered; confirm receipt to release escrow",
            )
        self._log_transition(order, expected, actor)
        return OrderResponse.from_order(order)

    async def confirm(
        self,
        db: AsyncSession,
        actor: Actor,
        order_id: str,
        step_up_code: str | None = None,
    ) -> OrderResponse:
        async with unit_of_work(db, "confirm", order_id) as uow:
            order = await self._lock(db, order_id)
            require_status(order, CONFIRM_FROM, "confirm")
            require_buyer_or_admin(order, actor)
            await self._require_not_frozen(db, actor)
            await self._check_step_up(db, uow, actor, step_up_code)
            order = await self._complete(db, order, actor)
        return OrderResponse.from_order(order)

    async def auto_release(
        self, db: AsyncSession, order_id: str, now: datetime | None = None
    ) -> OrderResponse:
        """Timer-driven confirm on behalf of the system once auto_release_at has passed."""
        now = now or utc_now()
        async with unit_of_work(db, "auto_release", order_id):
            order = await self._lock(db, order_id)
            require_status(order, CONFIRM_FROM, "auto-release")
            if order.auto_release_at is None or order.auto_release_at > now:
                raise InvalidStateError("Order", order.id, order.status, "auto-release yet")
            order = await self._complete(db, order, SYSTEM_ACTOR, now)
        return OrderResponse.from_order(order)

    async def cancel(
        self, db: AsyncSession, actor: Actor, order_id: str, reason: str
    ) -> OrderResponse:
        async with unit_of_work(db, "cancel", order_id):
            order = await self._lock(db, order_id)
            require_status(order, cancel_sources_for(order, actor), "cancel")
            expected = order.status
            now = utc_now()

            offer = await self._offers.get_for_update(db, order.offer_id)
            offer_takes_back = offer is not None and offer.is_active
            if offer_takes_back and order.trade_intent == TradeIntent.BUY_AD:
                # Escrow stays on the lister's wallet and rejoins the offer pool
                restore_fill(offer, order.amount, order.escrow_amount)
                order.status = OrderStatus.CANCELLED.value
                order.cancelled_at = now
                order.cancel_reason = reason
            else:
                if offer_takes_back:
                    restore_fill(offer, order.amount, order.escrow_amount)
                order = await refund_to_buyer(db, order, self._escrow, now, reason)
            if offer_takes_back:
                await self._offers.update(db, offer)

            order = await persist_transition(db, self._repo, order, expected, "cancel")
            await self._announce(
                db, order, actor,
                title="Order cancelled",
                message=f"Order cancelled: {reason}",
                audit_action="order.cancel",
            )
        self._log_transition(order, expected, actor)
        return OrderResponse.from_order(order)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_order(self, db: AsyncSession, actor: Actor, order_id: str) -> OrderResponse:
        order = await self._repo.get(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if actor.role not in _STAFF_ROLES and not is_participant(order, actor.user_id):
            raise NotAuthorizedError("Not a party to this order")
        return OrderResponse.from_order(order)

    async def list_orders(
        self,
        db: AsyncSession,
        actor: Actor,
        status: str | None,
        cursor: str | None,
        limit: int,
    ) -> OrderListResponse:
        orders = await self._repo.list_for_user(
            db, actor.user_id, status, cursor_decode(cursor), limit + 1
        )
        has_more = len(orders) > limit
        page = orders[:limit]
        return OrderListResponse(
            items=[OrderResponse.from_order(o) for o in page],
            next_cursor=cursor_encode(page[-1].id) if has_more and page else None,
            has_more=has_more,
        )

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    async def _lock(self, db: AsyncSession, order_id: str) -> Order:
        order = await self._repo.get_for_update(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def _complete(
        self, db: AsyncSession, order: Order, actor: Actor, now: datetime | None = None
    ) -> Order:
        expected = order.status
        order = await release_to_seller(db, order, self._escrow, now or utc_now())
        order = await persist_transition(db, self._repo, order, expected, "confirm")
        await self._announce(
            db, order, actor,
            title="Order completed",
            message=f"Escrow released: seller receives {units_to_display(order.seller_receives)} "
            f"{order.currency}, platform fee {units_to_display(order.platform_fee)}",
            audit_action="order.release",
        )
        self._log_transition(order, expected, actor)
        return order

    async def _require_not_frozen(self, db: AsyncSession, actor: Actor) -> None:
        if actor.is_system:
            return
        if await self._wallets.is_frozen(db, actor.user_id):
            raise AccountFrozenError(actor.user_id)

    async def _check_step_up(
        self, db: AsyncSession, uow: UnitOfWork, actor: Actor, code: str | None
    ) -> None:
        """Required only when the actor has step-up enabled; the system actor never has."""
        if actor.is_system or not await self._step_up.is_enabled(db, actor.user_id):
            return
        if not code:
            raise StepUpRequiredError()
        if not await self._step_up.verify(db, actor.user_id, code):
            raise NotAuthorizedError("Step-up code rejected")
        uow.on_rollback(partial(self._step_up.release, actor.user_id, code))

    async def _announce(
        self,
        db: AsyncSession,
        order: Order,
        actor: Actor,
        title: str,
        message: str,
        audit_action: str | None = None,
    ) -> None:
        await self._events.system_message(db, order.id, message)
        parties = parties_of(order)
        if actor.user_id in (parties.buyer_id, parties.seller_id):
            recipients = [parties.counterparty_of(actor.user_id)]
        else:
            recipients = [parties.buyer_id, parties.seller_id]
        for user_id in recipients:
            await self._events.notify(
                db, user_id, NotificationType.ORDER.value, title, message, f"/orders/{order.id}"
            )
        if audit_action:
            await self._events.audit(
                db, actor.user_id, audit_action, "order", order.id,
                {
                    "status": order.status,
                    "escrow_amount": order.escrow_amount,
                    "platform_fee": order.platform_fee,
                    "seller_receives": order.seller_receives,
                },
            )

    @staticmethod
    def _log_transition(order: Order, from_status: str, actor: Actor) -> None:
        logger.info(
            "Order %s: %s -> %s by %s", order.id, from_status, order.status, actor.user_id
        )

"""DisputeApplicationService — the admin override path out of `disputed`.

open:         participant, order in created|escrowed|paid|confirmed, no prior dispute
start_review: open -> in_review (dispute admin)
resolve:      open|in_review -> resolved_refund | resolved_release (dispute admin + step-up)

resolve() performs the escrow movement, the order row update and the
dispute row update in a single transaction; the dispute's resolved_at can
never be missing when funds have moved, and a retry after commit hits
AlreadyResolved instead of paying out twice.
"""

import logging
from functools import partial

from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.actor import Actor
from src.p2p_common.datetime_utils import utc_now
from src.p2p_common.enums import DisputeOutcome, DisputeStatus, NotificationType, OrderStatus
from src.p2p_common.errors import (
    AlreadyDisputedError,
    AlreadyResolvedError,
    DisputeNotFoundError,
    InvalidStateError,
    NotAuthorizedError,
    OrderNotFoundError,
    StepUpRequiredError,
)
from src.p2p_common.id_generator import generate_id
from src.p2p_common.unit_of_work import UnitOfWork, unit_of_work
from src.p2p_dispute.application.schemas import (
    DisputeListResponse,
    DisputeResponse,
    DisputeWithOrderResponse,
    cursor_decode,
    cursor_encode,
)
from src.p2p_dispute.domain.models import Dispute
from src.p2p_dispute.domain.repository import DisputeRepositoryProtocol
from src.p2p_dispute.infrastructure.persistence import DisputeRepository
from src.p2p_escrow.domain.engine import EscrowEngine
from src.p2p_events.domain.sink import EventSinkProtocol
from src.p2p_events.infrastructure.db_sink import DbEventSink
from src.p2p_gateway.auth.step_up import StepUpVerifier, TotpStepUpVerifier
from src.p2p_order.application.schemas import OrderResponse
from src.p2p_order.application.settlement import (
    persist_transition,
    refund_to_buyer,
    release_to_seller,
)
from src.p2p_order.domain.models import Order
from src.p2p_order.domain.parties import parties_of
from src.p2p_order.domain.repository import OrderRepositoryProtocol
from src.p2p_order.domain.transitions import (
    DISPUTE_FROM,
    is_participant,
    require_participant,
    require_status,
)
from src.p2p_order.infrastructure.persistence import OrderRepository

logger = logging.getLogger(__name__)

_UNRESOLVED = [DisputeStatus.OPEN.value, DisputeStatus.IN_REVIEW.value]


class DisputeApplicationService:
    def __init__(
        self,
        repo: DisputeRepositoryProtocol | None = None,
        order_repo: OrderRepositoryProtocol | None = None,
        escrow: EscrowEngine | None = None,
        events: EventSinkProtocol | None = None,
        step_up: StepUpVerifier | None = None,
    ) -> None:
        self._repo: DisputeRepositoryProtocol = repo or DisputeRepository()
        self._orders: OrderRepositoryProtocol = order_repo or OrderRepository()
        self._escrow = escrow or EscrowEngine()
        self._events: EventSinkProtocol = events or DbEventSink()
        self._step_up: StepUpVerifier = step_up or TotpStepUpVerifier()

    async def open_dispute(
        self, db: AsyncSession, actor: Actor, order_id: str, reason: str
    ) -> DisputeWithOrderResponse:
        async with unit_of_work(db, "open_dispute", order_id):
            order = await self._lock_order(db, order_id)
            require_participant(order, actor)
            if await self._repo.get_by_order(db, order_id) is not None:
                raise AlreadyDisputedError(order_id)
            require_status(order, DISPUTE_FROM, "open dispute")

            dispute = await self._repo.insert(
                db,
                Dispute(
                    id=generate_id(),
                    order_id=order_id,
                    opened_by=actor.user_id,
                    reason=reason,
                    status=DisputeStatus.OPEN.value,
                ),
            )
            expected = order.status
            order.status = OrderStatus.DISPUTED.value
            order = await persist_transition(db, self._orders, order, expected, "open dispute")

            await self._events.system_message(db, order.id, f"Dispute opened: {reason}")
            await self._notify_parties(
                db, order, "Dispute opened", "A dispute was opened on this order",
                skip=actor.user_id,
            )
            await self._events.audit(
                db, actor.user_id, "dispute.open", "dispute", dispute.id,
                {"order_id": order.id, "order_status_before": expected},
            )
        logger.info("Dispute opened: id=%s order=%s by=%s", dispute.id, order.id, actor.user_id)
        return DisputeWithOrderResponse(
            dispute=DisputeResponse.from_dispute(dispute), order=OrderResponse.from_order(order)
        )

    async def start_review(
        self, db: AsyncSession, actor: Actor, dispute_id: str
    ) -> DisputeResponse:
        self._require_dispute_admin(actor)
        async with unit_of_work(db, "start_review", dispute_id):
            dispute = await self._lock_dispute(db, dispute_id)
            if dispute.status != DisputeStatus.OPEN:
                raise InvalidStateError("Dispute", dispute.id, dispute.status, "start review")
            dispute.status = DisputeStatus.IN_REVIEW.value
            dispute.reviewed_by = actor.user_id
            dispute = await self._persist(db, dispute, DisputeStatus.OPEN.value, "start review")
            await self._events.audit(db, actor.user_id, "dispute.review", "dispute", dispute.id)
        logger.info("Dispute %s in review by %s", dispute.id, actor.user_id)
        return DisputeResponse.from_dispute(dispute)

    async def resolve(
        self,
        db: AsyncSession,
        actor: Actor,
        dispute_id: str,
        outcome: DisputeOutcome,
        notes: str,
        step_up_code: str | None,
    ) -> DisputeWithOrderResponse:
        self._require_dispute_admin(actor)
        async with unit_of_work(db, "resolve_dispute", dispute_id) as uow:
            dispute = await self._lock_dispute(db, dispute_id)
            await self._require_step_up(db, uow, actor, step_up_code)
            order = await self._lock_order(db, dispute.order_id)
            require_status(order, (OrderStatus.DISPUTED,), "resolve dispute")

            now = utc_now()
            if outcome == DisputeOutcome.REFUND:
                order = await refund_to_buyer(
                    db, order, self._escrow, now, reason=f"Dispute {dispute.id} refunded"
                )
                new_status = DisputeStatus.RESOLVED_REFUND.value
            else:
                order = await release_to_seller(db, order, self._escrow, now)
                new_status = DisputeStatus.RESOLVED_RELEASE.value
            order = await persist_transition(
                db, self._orders, order, OrderStatus.DISPUTED.value, "resolve dispute"
            )

            expected = dispute.status
            dispute.status = new_status
            dispute.outcome = outcome.value
            dispute.resolution = notes
            dispute.resolved_by = actor.user_id
            dispute.resolved_at = now
            dispute = await self._persist(db, dispute, expected, "resolve")

            message = f"Dispute resolved: {outcome.value}"
            await self._events.system_message(db, order.id, message)
            await self._notify_parties(db, order, "Dispute resolved", message)
            await self._events.audit(
                db, actor.user_id, "dispute.resolve", "dispute", dispute.id,
                {
                    "order_id": order.id,
                    "outcome": outcome.value,
                    "escrow_amount": order.escrow_amount,
                    "platform_fee": order.platform_fee,
                },
            )
        logger.info(
            "Dispute resolved: id=%s order=%s outcome=%s by=%s",
            dispute.id, order.id, outcome.value, actor.user_id,
        )
        return DisputeWithOrderResponse(
            dispute=DisputeResponse.from_dispute(dispute), order=OrderResponse.from_order(order)
        )

    async def get_dispute(
        self, db: AsyncSession, actor: Actor, dispute_id: str
    ) -> DisputeResponse:
        dispute = await self._repo.get(db, dispute_id)
        if dispute is None:
            raise DisputeNotFoundError(dispute_id)
        if not actor.can_resolve_disputes:
            order = await self._orders.get(db, dispute.order_id)
            if order is None or not is_participant(order, actor.user_id):
                raise NotAuthorizedError("Not a party to this dispute")
        return DisputeResponse.from_dispute(dispute)

    async def list_disputes(
        self,
        db: AsyncSession,
        actor: Actor,
        status: str | None,
        cursor: str | None,
        limit: int,
    ) -> DisputeListResponse:
        self._require_dispute_admin(actor)
        statuses = [status] if status else _UNRESOLVED
        disputes = await self._repo.list_by_status(db, statuses, cursor_decode(cursor), limit + 1)
        has_more = len(disputes) > limit
        page = disputes[:limit]
        return DisputeListResponse(
            items=[DisputeResponse.from_dispute(d) for d in page],
            next_cursor=cursor_encode(page[-1].id) if has_more and page else None,
            has_more=has_more,
        )

    # ------------------------------------------------------------------

    @staticmethod
    def _require_dispute_admin(actor: Actor) -> None:
        if not actor.can_resolve_disputes:
            raise NotAuthorizedError("Dispute admin role required")

    async def _require_step_up(
        self, db: AsyncSession, uow: UnitOfWork, actor: Actor, code: str | None
    ) -> None:
        """Always required here, whether or not the admin opted into step-up elsewhere."""
        if not code or not await self._step_up.is_enabled(db, actor.user_id):
            raise StepUpRequiredError()
        if not await self._step_up.verify(db, actor.user_id, code):
            raise NotAuthorizedError("Step-up code rejected")
        uow.on_rollback(partial(self._step_up.release, actor.user_id, code))

    async def _lock_dispute(self, db: AsyncSession, dispute_id: str) -> Dispute:
        dispute = await self._repo.get_for_update(db, dispute_id)
        if dispute is None:
            raise DisputeNotFoundError(dispute_id)
        if dispute.is_resolved:
            raise AlreadyResolvedError(dispute_id)
        return dispute

    async def _lock_order(self, db: AsyncSession, order_id: str) -> Order:
        order = await self._orders.get_for_update(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def _persist(
        self, db: AsyncSession, dispute: Dispute, expected_status: str, action: str
    ) -> Dispute:
        updated = await self._repo.compare_and_set(db, dispute, expected_status)
        if updated is None:
            raise InvalidStateError("Dispute", dispute.id, expected_status, action)
        return updated

    async def _notify_parties(
        self,
        db: AsyncSession,
        order: Order,
        title: str,
        message: str,
        skip: str | None = None,
    ) -> None:
        parties = parties_of(order)
        for user_id in (parties.buyer_id, parties.seller_id):
            if user_id != skip:
                await self._events.notify(
                    db, user_id, NotificationType.DISPUTE.value, title, message,
                    f"/orders/{order.id}",
                )

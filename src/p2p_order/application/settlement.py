"""Terminal fund movements shared by order confirmation and dispute resolution.

Both helpers mutate the order in memory; the caller persists it with
persist_transition() inside the same transaction as the escrow call.
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.enums import OrderStatus
from src.p2p_common.errors import InvalidStateError
from src.p2p_escrow.domain.engine import EscrowEngine
from src.p2p_order.domain.models import Order
from src.p2p_order.domain.parties import parties_of
from src.p2p_order.domain.repository import OrderRepositoryProtocol


async def release_to_seller(
    db: AsyncSession, order: Order, escrow: EscrowEngine, now: datetime
) -> Order:
    parties = parties_of(order)
    net, fee = await escrow.release_with_fee(
        db, parties.buyer_id, parties.seller_id, order.currency, order.escrow_amount, order.id
    )
    order.status = OrderStatus.COMPLETED.value
    order.platform_fee = fee
    order.seller_receives = net
    order.completed_at = now
    order.escrow_released_at = now
    return order


async def refund_to_buyer(
    db: AsyncSession, order: Order, escrow: EscrowEngine, now: datetime, reason: str
) -> Order:
    if order.escrow_amount > 0 and order.escrow_held_at is not None:
        await escrow.refund(
            db, parties_of(order).buyer_id, order.currency, order.escrow_amount, order.id
        )
        order.escrow_released_at = now
    order.status = OrderStatus.CANCELLED.value
    order.cancelled_at = now
    order.cancel_reason = reason
    return order


async def persist_transition(
    db: AsyncSession,
    repo: OrderRepositoryProtocol,
    order: Order,
    expected_status: str,
    action: str,
) -> Order:
    updated = await repo.compare_and_set(db, order, expected_status)
    if updated is None:
        raise InvalidStateError("Order", order.id, expected_status, action)
    return updated

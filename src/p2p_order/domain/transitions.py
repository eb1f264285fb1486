"""Order transition guards — pure checks, raise on failure, never mutate."""

from src.p2p_common.actor import Actor
from src.p2p_common.enums import OrderStatus
from src.p2p_common.errors import InvalidStateError, NotAuthorizedError
from src.p2p_order.domain.models import Order
from src.p2p_order.domain.parties import parties_of

# Legacy awaiting_deposit rows may still be marked paid
MARK_PAID_FROM = (OrderStatus.CREATED, OrderStatus.AWAITING_DEPOSIT, OrderStatus.ESCROWED)
DELIVER_FROM = (OrderStatus.ESCROWED, OrderStatus.PAID)
CONFIRM_FROM = (OrderStatus.CONFIRMED,)
DISPUTE_FROM = (
    OrderStatus.CREATED,
    OrderStatus.ESCROWED,
    OrderStatus.PAID,
    OrderStatus.CONFIRMED,
)
BUYER_CANCEL_FROM = (OrderStatus.CREATED, OrderStatus.ESCROWED)
ADMIN_CANCEL_FROM = (OrderStatus.CREATED, OrderStatus.ESCROWED, OrderStatus.PAID)


def require_status(order: Order, allowed: tuple[OrderStatus, ...], action: str) -> None:
    if order.status not in allowed:
        raise InvalidStateError("Order", order.id, order.status, action)


def require_buyer(order: Order, actor: Actor) -> None:
    if actor.user_id != parties_of(order).buyer_id:
        raise NotAuthorizedError("Only the buyer can do this")


def require_seller_or_admin(order: Order, actor: Actor) -> None:
    if actor.is_admin:
        return
    if actor.user_id != parties_of(order).seller_id:
        raise NotAuthorizedError("Only the seller or an admin can do this")


def require_buyer_or_admin(order: Order, actor: Actor) -> None:
    if actor.is_admin:
        return
    if actor.user_id != parties_of(order).buyer_id:
        raise NotAuthorizedError("Only the buyer or an admin can do this")


def is_participant(order: Order, user_id: str) -> bool:
    parties = parties_of(order)
    return user_id in (parties.buyer_id, parties.seller_id, order.created_by)


def require_participant(order: Order, actor: Actor) -> None:
    if not is_participant(order, actor.user_id):
        raise NotAuthorizedError("Not a party to this order")


def cancel_sources_for(order: Order, actor: Actor) -> tuple[OrderStatus, ...]:
    """Statuses from which this actor may cancel; NotAuthorized for anyone else."""
    if actor.is_admin:
        return ADMIN_CANCEL_FROM
    if actor.user_id == parties_of(order).buyer_id:
        return BUYER_CANCEL_FROM
    raise NotAuthorizedError("Only the buyer or an admin can cancel")

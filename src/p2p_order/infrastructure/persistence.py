"""OrderRepository — raw SQL persistence for orders.

Transitions are compare-and-swap writes: the UPDATE carries the status the
caller observed, so a concurrent transition that got there first turns this
one into a zero-row update instead of a silent overwrite.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.errors import InternalError
from src.p2p_order.domain.models import Order

_COLUMNS = """
    id, offer_id, created_by, vendor_id, buyer_id, seller_id, trade_intent, currency,
    amount, fiat_amount, price_per_unit, payment_method, status,
    escrow_amount, platform_fee, seller_receives, delivery_note, cancel_reason,
    buyer_paid_at, vendor_confirmed_at, completed_at, cancelled_at,
    escrow_held_at, escrow_released_at, auto_release_at, created_at, updated_at
"""

_INSERT_SQL = text(f"""
    INSERT INTO orders (id, offer_id, created_by, vendor_id, buyer_id, seller_id,
        trade_intent, currency, amount, fiat_amount, price_per_unit, payment_method,
        status, escrow_amount, escrow_held_at)
    VALUES (:id, :offer_id, :created_by, :vendor_id, :buyer_id, :seller_id,
        :trade_intent, :currency, :amount, :fiat_amount, :price_per_unit, :payment_method,
        :status, :escrow_amount, :escrow_held_at)
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM orders WHERE id = :id")

_GET_FOR_UPDATE_SQL = text(f"SELECT {_COLUMNS} FROM orders WHERE id = :id FOR UPDATE")

_CAS_UPDATE_SQL = text(f"""
    UPDATE orders
    SET status = :status,
        escrow_amount = :escrow_amount,
        platform_fee = :platform_fee,
        seller_receives = :seller_receives,
        delivery_note = :delivery_note,
        cancel_reason = :cancel_reason,
        buyer_paid_at = :buyer_paid_at,
        vendor_confirmed_at = :vendor_confirmed_at,
        completed_at = :completed_at,
        cancelled_at = :cancelled_at,
        escrow_released_at = :escrow_released_at,
        auto_release_at = :auto_release_at,
        updated_at = NOW()
    WHERE id = :id AND status = :expected_status
    RETURNING {_COLUMNS}
""")

_LIST_FOR_USER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM orders
    WHERE (buyer_id = :user_id OR seller_id = :user_id)
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_order(row: Any) -> Order:
    return Order(
        id=row.id,
        offer_id=row.offer_id,
        created_by=row.created_by,
        vendor_id=row.vendor_id,
        trade_intent=row.trade_intent,
        currency=row.currency,
        amount=row.amount,
        fiat_amount=row.fiat_amount,
        price_per_unit=row.price_per_unit,
        payment_method=row.payment_method,
        status=row.status,
        buyer_id=row.buyer_id,
        seller_id=row.seller_id,
        escrow_amount=row.escrow_amount,
        platform_fee=row.platform_fee,
        seller_receives=row.seller_receives,
        delivery_note=row.delivery_note,
        cancel_reason=row.cancel_reason,
        buyer_paid_at=row.buyer_paid_at,
        vendor_confirmed_at=row.vendor_confirmed_at,
        completed_at=row.completed_at,
        cancelled_at=row.cancelled_at,
        escrow_held_at=row.escrow_held_at,
        escrow_released_at=row.escrow_released_at,
        auto_release_at=row.auto_release_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class OrderRepository:
    async def insert(self, db: AsyncSession, order: Order) -> Order:
        result = await db.execute(
            _INSERT_SQL,
            {
                "id": order.id,
                "offer_id": order.offer_id,
                "created_by": order.created_by,
                "vendor_id": order.vendor_id,
                "buyer_id": order.buyer_id,
                "seller_id": order.seller_id,
                "trade_intent": order.trade_intent,
                "currency": order.currency,
                "amount": order.amount,
                "fiat_amount": order.fiat_amount,
                "price_per_unit": order.price_per_unit,
                "payment_method": order.payment_method,
                "status": order.status,
                "escrow_amount": order.escrow_amount,
                "escrow_held_at": order.escrow_held_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Order insert returned no rows")
        return _row_to_order(row)

    async def get(self, db: AsyncSession, order_id: str) -> Order | None:
        row = (await db.execute(_GET_SQL, {"id": order_id})).fetchone()
        return _row_to_order(row) if row else None

    async def get_for_update(self, db: AsyncSession, order_id: str) -> Order | None:
        row = (await db.execute(_GET_FOR_UPDATE_SQL, {"id": order_id})).fetchone()
        return _row_to_order(row) if row else None

    async def compare_and_set(
        self, db: AsyncSession, order: Order, expected_status: str
    ) -> Order | None:
        result = await db.execute(
            _CAS_UPDATE_SQL,
            {
                "id": order.id,
                "expected_status": expected_status,
                "status": order.status,
                "escrow_amount": order.escrow_amount,
                "platform_fee": order.platform_fee,
                "seller_receives": order.seller_receives,
                "delivery_note": order.delivery_note,
                "cancel_reason": order.cancel_reason,
                "buyer_paid_at": order.buyer_paid_at,
                "vendor_confirmed_at": order.vendor_confirmed_at,
                "completed_at": order.completed_at,
                "cancelled_at": order.cancelled_at,
                "escrow_released_at": order.escrow_released_at,
                "auto_release_at": order.auto_release_at,
            },
        )
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Order]:
        result = await db.execute(
            _LIST_FOR_USER_SQL,
            {"user_id": user_id, "status": status, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_order(row) for row in result.fetchall()]

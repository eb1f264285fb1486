"""OfferRepository — raw SQL persistence for offers.

get_for_update() takes a row lock; callers hold it until their transaction
ends, which serialises order creation against the same offer.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.errors import InternalError
from src.p2p_offer.domain.models import Offer

_COLUMNS = """
    id, vendor_id, trade_intent, currency, price_per_unit, min_limit, max_limit,
    available_amount, escrow_held_amount, payment_methods, terms, is_active,
    created_at, updated_at
"""

_INSERT_SQL = text(f"""
    INSERT INTO offers (id, vendor_id, trade_intent, currency, price_per_unit,
        min_limit, max_limit, available_amount, escrow_held_amount,
        payment_methods, terms, is_active)
    VALUES (:id, :vendor_id, :trade_intent, :currency, :price_per_unit,
        :min_limit, :max_limit, :available_amount, :escrow_held_amount,
        :payment_methods, :terms, :is_active)
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM offers WHERE id = :id")

_GET_FOR_UPDATE_SQL = text(f"SELECT {_COLUMNS} FROM offers WHERE id = :id FOR UPDATE")

_UPDATE_SQL = text(f"""
    UPDATE offers
    SET price_per_unit = :price_per_unit,
        min_limit = :min_limit,
        max_limit = :max_limit,
        available_amount = :available_amount,
        escrow_held_amount = :escrow_held_amount,
        payment_methods = :payment_methods,
        terms = :terms,
        is_active = :is_active,
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_COLUMNS}
""")

_LIST_ACTIVE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM offers
    WHERE is_active = TRUE
      AND (CAST(:trade_intent AS TEXT) IS NULL OR trade_intent = CAST(:trade_intent AS TEXT))
      AND (CAST(:currency AS TEXT) IS NULL OR currency = CAST(:currency AS TEXT))
      AND (CAST(:payment_method AS TEXT) IS NULL
           OR CAST(:payment_method AS TEXT) = ANY(payment_methods))
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_LIST_BY_VENDOR_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM offers
    WHERE vendor_id = :vendor_id
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_GET_KYC_SQL = text("SELECT kyc_status FROM users WHERE id = CAST(:user_id AS UUID)")


def _row_to_offer(row: object) -> Offer:
    return Offer(
        id=row.id,  # type: ignore[attr-defined]
        vendor_id=row.vendor_id,  # type: ignore[attr-defined]
        trade_intent=row.trade_intent,  # type: ignore[attr-defined]
        currency=row.currency,  # type: ignore[attr-defined]
        price_per_unit=row.price_per_unit,  # type: ignore[attr-defined]
        min_limit=row.min_limit,  # type: ignore[attr-defined]
        max_limit=row.max_limit,  # type: ignore[attr-defined]
        available_amount=row.available_amount,  # type: ignore[attr-defined]
        escrow_held_amount=row.escrow_held_amount,  # type: ignore[attr-defined]
        payment_methods=list(row.payment_methods or []),  # type: ignore[attr-defined]
        terms=row.terms,  # type: ignore[attr-defined]
        is_active=row.is_active,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _params(offer: Offer) -> dict[str, object]:
    return {
        "id": offer.id,
        "vendor_id": offer.vendor_id,
        "trade_intent": offer.trade_intent,
        "currency": offer.currency,
        "price_per_unit": offer.price_per_unit,
        "min_limit": offer.min_limit,
        "max_limit": offer.max_limit,
        "available_amount": offer.available_amount,
        "escrow_held_amount": offer.escrow_held_amount,
        "payment_methods": offer.payment_methods,
        "terms": offer.terms,
        "is_active": offer.is_active,
    }


class OfferRepository:
    async def insert(self, db: AsyncSession, offer: Offer) -> Offer:
        row = (await db.execute(_INSERT_SQL, _params(offer))).fetchone()
        if row is None:
            raise InternalError("Offer insert returned no rows")
        return _row_to_offer(row)

    async def get(self, db: AsyncSession, offer_id: str) -> Offer | None:
        row = (await db.execute(_GET_SQL, {"id": offer_id})).fetchone()
        return _row_to_offer(row) if row else None

    async def get_for_update(self, db: AsyncSession, offer_id: str) -> Offer | None:
        row = (await db.execute(_GET_FOR_UPDATE_SQL, {"id": offer_id})).fetchone()
        return _row_to_offer(row) if row else None

    async def update(self, db: AsyncSession, offer: Offer) -> Offer:
        row = (await db.execute(_UPDATE_SQL, _params(offer))).fetchone()
        if row is None:
            raise InternalError(f"Offer {offer.id} vanished during update")
        return _row_to_offer(row)

    async def list_active(
        self,
        db: AsyncSession,
        trade_intent: str | None,
        currency: str | None,
        payment_method: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Offer]:
        result = await db.execute(
            _LIST_ACTIVE_SQL,
            {
                "trade_intent": trade_intent,
                "currency": currency,
                "payment_method": payment_method,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_offer(row) for row in result.fetchall()]

    async def list_by_vendor(
        self, db: AsyncSession, vendor_id: str, cursor_id: str | None, limit: int
    ) -> list[Offer]:
        result = await db.execute(
            _LIST_BY_VENDOR_SQL,
            {"vendor_id": vendor_id, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_offer(row) for row in result.fetchall()]

    async def get_kyc_status(self, db: AsyncSession, user_id: str) -> str | None:
        row = (await db.execute(_GET_KYC_SQL, {"user_id": user_id})).fetchone()
        return row.kyc_status if row else None
